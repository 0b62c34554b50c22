"""Dispatch of decoded inner RPC messages to business handlers."""

from __future__ import annotations

import logging
from typing import Any, Callable

from pantyhose.sessions import BackSession

logger = logging.getLogger(__name__)

#: ``(session, msg_unique_id, front_session_id, message_id, inner_message)``
RpcRequestHandler = Callable[[BackSession, int, int, int, Any], None]
#: ``(session, front_session_id, message_id, inner_message)``
RpcNotifyHandler = Callable[[BackSession, int, int, Any], None]


class RpcMessageDispatcher:
    """Request and notify handlers, each keyed by the inner message id."""

    def __init__(self) -> None:
        self._request_handlers: dict[int, RpcRequestHandler] = {}
        self._notify_handlers: dict[int, RpcNotifyHandler] = {}

    def register_request_handler(self, message_id: int, handler: RpcRequestHandler) -> None:
        self._request_handlers[message_id] = handler

    def register_notify_handler(self, message_id: int, handler: RpcNotifyHandler) -> None:
        self._notify_handlers[message_id] = handler

    def unregister_request_handler(self, message_id: int) -> bool:
        return self._request_handlers.pop(message_id, None) is not None

    def unregister_notify_handler(self, message_id: int) -> bool:
        return self._notify_handlers.pop(message_id, None) is not None

    def dispatch_request_message(
        self,
        message_id: int,
        session: BackSession,
        msg_unique_id: int,
        front_session_id: int,
        inner_message: Any,
    ) -> bool:
        """Call the request handler for ``message_id``; return False if there is none."""
        handler = self._request_handlers.get(message_id)
        if handler is None:
            logger.warning("No RPC request handler found for message id %d", message_id)
            return False
        handler(session, msg_unique_id, front_session_id, message_id, inner_message)
        return True

    def dispatch_notify_message(
        self,
        message_id: int,
        session: BackSession,
        front_session_id: int,
        inner_message: Any,
    ) -> bool:
        """Call the notify handler for ``message_id``; return False if there is none."""
        handler = self._notify_handlers.get(message_id)
        if handler is None:
            logger.warning("No RPC notify handler found for message id %d", message_id)
            return False
        handler(session, front_session_id, message_id, inner_message)
        return True

    def has_request_handler(self, message_id: int) -> bool:
        return message_id in self._request_handlers

    def has_notify_handler(self, message_id: int) -> bool:
        return message_id in self._notify_handlers

    def registered_request_message_ids(self) -> list[int]:
        return list(self._request_handlers)

    def registered_notify_message_ids(self) -> list[int]:
        return list(self._notify_handlers)

    def request_handler_count(self) -> int:
        return len(self._request_handlers)

    def notify_handler_count(self) -> int:
        return len(self._notify_handlers)

    def clear_all_handlers(self) -> None:
        logger.debug(
            "Clearing %d RPC request handlers and %d notify handlers",
            len(self._request_handlers), len(self._notify_handlers),
        )
        self._request_handlers.clear()
        self._notify_handlers.clear()

    def dispose(self) -> None:
        self.clear_all_handlers()