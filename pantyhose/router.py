"""Choosing which backend session receives a message for a server type."""

from __future__ import annotations

import logging
import random
from typing import Any, Callable, Optional

from pantyhose.sessions import FrontSession

logger = logging.getLogger(__name__)

#: ``(target_server_type, front_session, back_session_manager) -> back session id``
RouterFunction = Callable[[str, Optional[FrontSession], Any], Optional[int]]


def default_router(
    target_server_type: str,
    front_session: Optional[FrontSession],
    back_session_manager: Any,
) -> Optional[int]:
    """Prefer the server bound in the client's metadata, else pick an active one at random.

    A random pick is recorded in the client's metadata so later messages stick to it.
    """
    if front_session is not None:
        server_id = front_session.metadata.get_server_id(target_server_type)
        if server_id is not None:
            if back_session_manager.get_session(server_id) is not None:
                return server_id
            logger.warning(
                "Server ID %d from metadata not found in active sessions", server_id
            )

    active = back_session_manager.get_active_sessions(target_server_type)
    if not active:
        logger.warning("No active back sessions found for type: %s", target_server_type)
        return None

    session_id = random.choice(active).session_id
    logger.info(
        "Selected back session %d for type %s (from %d available)",
        session_id, target_server_type, len(active),
    )
    if front_session is not None:
        front_session.metadata.add_server_meta(target_server_type, session_id)
    return session_id


class RouterManager:
    """Routing functions by server type, falling back to :func:`default_router`."""

    def __init__(self) -> None:
        self._routers: dict[str, RouterFunction] = {}
        self.default_router: RouterFunction = default_router

    def add_router(self, server_type: str, router_fn: RouterFunction) -> bool:
        """Register a router; return False if the type already has one."""
        if server_type in self._routers:
            logger.warning("Router for server type %r already exists", server_type)
            return False
        self._routers[server_type] = router_fn
        return True

    def remove_router(self, server_type: str) -> bool:
        if self._routers.pop(server_type, None) is None:
            logger.warning("Router function for server type %r not found", server_type)
            return False
        return True

    def get_router(self, server_type: str) -> RouterFunction:
        return self._routers.get(server_type, self.default_router)

    def has_router(self, server_type: str) -> bool:
        return server_type in self._routers

    def router_count(self) -> int:
        return len(self._routers)

    def server_types(self) -> list[str]:
        return list(self._routers)

    def dispose(self) -> None:
        logger.info("Disposing RouterManager with %d routers", len(self._routers))
        self._routers.clear()