"""Sending messages to other cluster servers by server type or server id."""

from __future__ import annotations

import logging
from typing import Any, Optional

from pantyhose.back import BackSessionManager
from pantyhose.front import FrontSessionManager
from pantyhose.router import RouterFunction, RouterManager
from pantyhose.sessions import FrontSession

logger = logging.getLogger(__name__)


class RpcManager:
    """Routes outgoing messages to back sessions through a :class:`RouterManager`."""

    def __init__(self) -> None:
        self.router_manager = RouterManager()
        self._front_session_manager: Optional[FrontSessionManager] = None
        self._back_session_manager: Optional[BackSessionManager] = None

    def init(
        self,
        front_session_manager: FrontSessionManager,
        back_session_manager: BackSessionManager,
    ) -> bool:
        """Attach the session managers that messages are routed through."""
        self._front_session_manager = front_session_manager
        self._back_session_manager = back_session_manager
        return True

    @property
    def is_initialized(self) -> bool:
        return self._back_session_manager is not None

    def _back_sessions(self) -> BackSessionManager:
        if self._back_session_manager is None:
            raise RuntimeError("RpcManager not initialized with session managers")
        return self._back_session_manager

    def add_router(self, server_type: str, router_fn: RouterFunction) -> bool:
        """Register a router for ``server_type``; return False if one exists."""
        return self.router_manager.add_router(server_type, router_fn)

    def remove_router(self, server_type: str) -> bool:
        return self.router_manager.remove_router(server_type)

    def router_count(self) -> int:
        return self.router_manager.router_count()

    def server_types(self) -> list[str]:
        return self.router_manager.server_types()

    def _send_to(self, back_sessions: BackSessionManager, session_id: int, msg: Any) -> bool:
        session = back_sessions.get_session(session_id)
        if session is None:
            logger.error("Back session %d not found", session_id)
            return False
        if not session.send_message(msg):
            logger.error("Failed to send message to back session %d", session_id)
            return False
        logger.debug("Sent message to back session %d", session_id)
        return True

    def call_with_session(self, server_type: str, msg: Any, front_session: FrontSession) -> bool:
        """Route ``msg`` to a server of ``server_type`` on behalf of ``front_session``.

        Returns False when no back session is chosen, found, or able to send.
        """
        back_sessions = self._back_sessions()
        router_fn = self.router_manager.get_router(server_type)
        target = router_fn(server_type, front_session, back_sessions)
        if target is None:
            logger.debug("No suitable back session found for server type: %s", server_type)
            return False
        return self._send_to(back_sessions, target, msg)

    def call_to_server(self, server_id: int, msg: Any) -> bool:
        """Send ``msg`` straight to the back session with id ``server_id``."""
        return self._send_to(self._back_sessions(), server_id, msg)

    def dispose(self) -> None:
        """Detach the session managers and drop every router."""
        self._front_session_manager = None
        self._back_session_manager = None
        self.router_manager.dispose()
        logger.info("RpcManager disposed")