"""Client sessions over TCP and WebSocket, and dispatch of their messages."""

from __future__ import annotations

import itertools
import logging
from typing import Any, Callable, Optional

from pantyhose.sessions import (
    Address,
    FrontSession,
    NetworkEvent,
    NetworkEventType,
    ServerType,
)

logger = logging.getLogger(__name__)

#: ``(session, message)``; called for each message whose id it is registered for.
FrontMessageHandler = Callable[[FrontSession, Any], None]


class FrontSessionManager:
    """Holds the sessions of connected clients."""

    def __init__(self) -> None:
        self._sessions: dict[int, FrontSession] = {}
        self._ids = itertools.count(1)
        self.msg_processor: Any = None
        self.is_initialized = False

    def init(self, event_manager: Any, msg_processor: Any) -> None:
        """Set the message processor and register for network events; a second call does nothing."""
        if self.is_initialized:
            return
        self.msg_processor = msg_processor
        event_manager.add_handler(self)
        self.is_initialized = True

    def dispose(self) -> None:
        """Close every session; does nothing unless initialized."""
        if not self.is_initialized:
            return
        self.close_all()
        self.is_initialized = False
        logger.info("FrontSessionManager disposed")

    # ----- lookups -------------------------------------------------------

    def get_session(self, session_id: int) -> Optional[FrontSession]:
        return self._sessions.get(session_id)

    def get_session_by_user_id(self, user_id: int) -> Optional[FrontSession]:
        return next((s for s in self._sessions.values() if s.user_id == user_id), None)

    def session_count(self) -> int:
        return len(self._sessions)

    def connected_count(self) -> int:
        return sum(1 for s in self._sessions.values() if s.is_connected())

    def authenticated_count(self) -> int:
        return sum(1 for s in self._sessions.values() if s.authenticated)

    # ----- creation and removal ------------------------------------------

    def _create(self, connection: Any, remote_addr: Optional[Address], kind: str) -> int:
        if not self.is_initialized:
            raise RuntimeError("FrontSessionManager is not initialized")
        session_id = next(self._ids)
        session = FrontSession(
            session_id=session_id, connection=connection, remote_addr=remote_addr
        )
        if self.msg_processor is None:
            logger.error(
                "FrontSessionManager has no msg_processor when creating %s session %d",
                kind, session_id,
            )
        else:
            # Reading starts only once the processor is in place.
            connection.set_msg_processor(self.msg_processor)
            connection.start_read_task()
        self._sessions[session_id] = session
        logger.debug("Created %s front session %d from %s", kind, session_id, remote_addr)
        return session_id

    def create_tcp_session(self, connection: Any, remote_addr: Optional[Address]) -> int:
        """Wrap an accepted TCP connection in a new session and return its id."""
        return self._create(connection, remote_addr, "TCP")

    def create_websocket_session(self, connection: Any, remote_addr: Optional[Address]) -> int:
        """Wrap an accepted WebSocket connection in a new session and return its id."""
        return self._create(connection, remote_addr, "WebSocket")

    def remove_session(self, session_id: int) -> bool:
        session = self._sessions.pop(session_id, None)
        if session is None:
            logger.error("Attempt to remove non-existent front session %d", session_id)
            return False
        session.close()
        return True

    def update_all(self) -> bool:
        """Drop sessions whose connection has gone."""
        gone = [sid for sid, s in self._sessions.items() if not s.is_connected()]
        for session_id in gone:
            self.remove_session(session_id)
        return True

    def close_all(self) -> bool:
        for session in self._sessions.values():
            session.close()
        self._sessions.clear()
        logger.info("Closed all front sessions")
        return True

    # ----- network events ------------------------------------------------

    def handle_event(self, event: NetworkEvent) -> None:
        """React to front-TCP connection events; other events are ignored."""
        if event.server_type is not ServerType.FRONT_TCP:
            return
        kind = event.event_type
        if kind is NetworkEventType.NEW_TCP_CONNECTION:
            self._on_new_connection(event, self.create_tcp_session, "NewTcpConnection")
        elif kind is NetworkEventType.NEW_WEBSOCKET_CONNECTION:
            self._on_new_connection(
                event, self.create_websocket_session, "NewWebSocketConnection"
            )
        elif kind is NetworkEventType.DISCONNECT:
            self._on_disconnect(event)
        elif kind is NetworkEventType.STREAM_DATA_NOT_EXPECTED:
            self._on_unexpected_data(event)

    def _on_new_connection(
        self, event: NetworkEvent, create: Callable[[Any, Address], int], label: str
    ) -> None:
        connection, event.connection = event.connection, None
        if connection is None:
            logger.error("FrontSessionManager: %s event has no connection", label)
            return
        if event.remote_addr is None:
            logger.error("FrontSessionManager: %s event has no remote address", label)
            return
        create(connection, event.remote_addr)

    def _on_disconnect(self, event: NetworkEvent) -> None:
        if self._sessions.pop(event.session_id, None) is not None:
            logger.info("Removed session %d due to disconnect", event.session_id)
        else:
            logger.debug("Disconnect event for unknown session %d", event.session_id)

    def _on_unexpected_data(self, event: NetworkEvent) -> None:
        session = self._sessions.pop(event.session_id, None)
        if session is None:
            logger.debug("StreamDataNotExpected event for unknown session %d", event.session_id)
            return
        session.close()
        logger.info("Closed session %d due to unexpected stream data", event.session_id)


class FrontSessionMessageDispatcher:
    """Routes client messages to handlers registered by message id."""

    def __init__(self) -> None:
        self._handlers: dict[int, FrontMessageHandler] = {}
        self._session_manager: Optional[FrontSessionManager] = None

    def init(self, event_manager: Any, session_manager: FrontSessionManager) -> bool:
        """Register for network events; return False if already initialized."""
        if self._session_manager is not None:
            return False
        event_manager.add_handler(self)
        self._session_manager = session_manager
        return True

    def register_handler(self, message_id: int, handler: FrontMessageHandler) -> None:
        self._handlers[message_id] = handler

    def unregister_handler(self, message_id: int) -> bool:
        return self._handlers.pop(message_id, None) is not None

    def clear_all_handlers(self) -> None:
        self._handlers.clear()

    def has_handler(self, message_id: int) -> bool:
        return message_id in self._handlers

    def registered_message_ids(self) -> list[int]:
        return list(self._handlers)

    def dispose(self) -> None:
        if self._session_manager is None:
            return
        self.clear_all_handlers()
        self._session_manager = None

    def handle_event(self, event: NetworkEvent) -> None:
        """Hand a client message, TCP or WebSocket, to its handler."""
        if event.event_type is not NetworkEventType.NEW_MESSAGE:
            return
        if event.server_type not in (ServerType.FRONT_TCP, ServerType.FRONT_WEBSOCKET):
            return
        if event.message_id is None or event.message is None:
            return
        handler = self._handlers.get(event.message_id)
        if handler is None:
            logger.debug("No handler found for message id %d", event.message_id)
            return
        if self._session_manager is None:
            logger.error("FrontSessionMessageDispatcher is not initialized")
            return
        session = self._session_manager.get_session(event.session_id)
        if session is None:
            logger.error("FrontSession %d not found for message dispatch", event.session_id)
            return
        handler(session, event.message)