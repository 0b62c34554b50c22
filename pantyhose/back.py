"""Sessions to other cluster servers and dispatch of their messages."""

from __future__ import annotations

import itertools
import logging
from typing import Any, Callable, Optional

from pantyhose.sessions import (
    Address,
    BackSession,
    NetworkEvent,
    NetworkEventType,
    ServerType,
)

logger = logging.getLogger(__name__)

#: ``(session, message)``; called for each message whose id it is registered for.
BackMessageHandler = Callable[[BackSession, Any], None]


def _call_if_present(obj: Any, name: str, *args: Any) -> None:
    method = getattr(obj, name, None)
    if callable(method):
        method(*args)


class BackSessionManager:
    """Holds back sessions, first as unauthorized, then authorized once the peer proves itself."""

    def __init__(self) -> None:
        self._sessions: dict[int, BackSession] = {}
        self._unauthorized: dict[int, BackSession] = {}
        self._ids = itertools.count(1)
        self._server_id = 0
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
        self.close_all_unauthorized()
        self.is_initialized = False
        logger.info("BackSessionManager disposed")

    # ----- lookups -------------------------------------------------------

    def get_session(self, session_id: int) -> Optional[BackSession]:
        return self._sessions.get(session_id)

    def get_session_by_user_id(self, user_id: int) -> Optional[BackSession]:
        return next((s for s in self._sessions.values() if s.user_id == user_id), None)

    def find_session_by_server_id(self, server_id: int) -> Optional[BackSession]:
        return next((s for s in self._sessions.values() if s.server_id == server_id), None)

    def session_count(self) -> int:
        return len(self._sessions)

    def connected_count(self) -> int:
        return sum(1 for s in self._sessions.values() if s.is_connected())

    def authenticated_count(self) -> int:
        return sum(1 for s in self._sessions.values() if s.authenticated)

    def unauthorized_count(self) -> int:
        return len(self._unauthorized)

    def get_unauthorized_session(self, session_id: int) -> Optional[BackSession]:
        return self._unauthorized.get(session_id)

    def all_sessions(self) -> list[BackSession]:
        """Authorized sessions followed by unauthorized ones."""
        return [*self._sessions.values(), *self._unauthorized.values()]

    def get_any_session(self, session_id: int) -> Optional[BackSession]:
        session = self._sessions.get(session_id)
        return session if session is not None else self._unauthorized.get(session_id)

    # ----- authorization -------------------------------------------------

    def authorize_session(self, session_id: int, server_id: int, server_type: str) -> bool:
        """Move an unauthorized session to the authorized set, recording its server identity."""
        session = self._unauthorized.pop(session_id, None)
        if session is None:
            logger.error("Session %d not found in unauthorized sessions", session_id)
            return False
        session.authenticated = True
        session.server_id = server_id
        session.server_type = server_type
        self._sessions[session_id] = session
        logger.debug("Session %d moved from unauthorized to authorized", session_id)
        return True

    def remove_unauthorized_session(self, session_id: int) -> bool:
        session = self._unauthorized.pop(session_id, None)
        if session is None:
            logger.error("Attempt to remove non-existent unauthorized session %d", session_id)
            return False
        session.close()
        return True

    def close_all_unauthorized(self) -> bool:
        for session in self._unauthorized.values():
            session.close()
        self._unauthorized.clear()
        return True

    def update_all_unauthorized(self) -> bool:
        """Drop unauthorized sessions whose connection has gone."""
        gone = [sid for sid, s in self._unauthorized.items() if not s.is_connected()]
        for session_id in gone:
            self.remove_unauthorized_session(session_id)
        return True

    # ----- server types --------------------------------------------------

    def get_active_sessions(self, server_type: str) -> list[BackSession]:
        """Connected authorized sessions of the given server type."""
        return [
            s for s in self._sessions.values()
            if s.is_connected() and s.server_type == server_type
        ]

    def available_server_types(self) -> list[str]:
        """Server types among connected authorized sessions, sorted."""
        return sorted({
            s.server_type for s in self._sessions.values()
            if s.is_connected() and s.server_type is not None
        })

    def active_session_count(self, server_type: str) -> int:
        return len(self.get_active_sessions(server_type))

    # ----- creation and removal ------------------------------------------

    def _require_initialized(self) -> None:
        if not self.is_initialized:
            raise RuntimeError("BackSessionManager is not initialized")

    def _attach_processor(self, session_id: int, connection: Any) -> None:
        if self.msg_processor is None:
            logger.error("No message processor available for back session %d", session_id)
            return
        connection.set_msg_processor(self.msg_processor)

    def create_session(self, server_id: int, connection: Any, remote_addr: Optional[Address]) -> int:
        """Wrap an accepted connection in a new unauthorized session and start reading."""
        self._require_initialized()
        session_id = next(self._ids)
        self._attach_processor(session_id, connection)
        _call_if_present(connection, "start_read_task")
        self._unauthorized[session_id] = BackSession(
            session_id=session_id,
            connection=connection,
            remote_addr=remote_addr,
            server_id=server_id,
        )
        logger.debug("Created unauthorized back session %d from %s", session_id, remote_addr)
        return session_id

    def create_client_session(self, server_id: int, connection: Any, remote_addr: Address) -> int:
        """Create an unauthorized session that dials out to ``remote_addr``."""
        self._require_initialized()
        session_id = next(self._ids)
        session = BackSession(
            session_id=session_id,
            connection=connection,
            remote_addr=remote_addr,
            server_id=server_id,
        )
        self._attach_processor(session_id, connection)
        _call_if_present(connection, "connect_to", remote_addr)
        self._unauthorized[session_id] = session
        logger.debug("Created client back session %d connecting to %s", session_id, remote_addr)
        return session_id

    def remove_session(self, session_id: int) -> bool:
        session = self._sessions.pop(session_id, None)
        if session is None:
            logger.error("Attempt to remove non-existent back session %d", session_id)
            return False
        session.close()
        return True

    def remove_bad_token_session(self, session_id: int, server_id: int) -> bool:
        """Close and drop a session that failed token authentication, wherever it is."""
        for pool, kind in ((self._sessions, "authorized"), (self._unauthorized, "unauthorized")):
            session = pool.pop(session_id, None)
            if session is not None:
                logger.error(
                    "Security: removing %s session %d from server_id %d due to invalid token",
                    kind, session_id, server_id,
                )
                session.close()
                return True
        logger.error("Security: failed to remove bad token session %d - not found", session_id)
        return False

    def update_all(self) -> bool:
        """Drop every session, authorized or not, whose connection has gone."""
        gone = [sid for sid, s in self._sessions.items() if not s.is_connected()]
        for session_id in gone:
            self.remove_session(session_id)
        self.update_all_unauthorized()
        return True

    def close_all(self) -> bool:
        for session in self._sessions.values():
            session.close()
        self._sessions.clear()
        return True

    # ----- network events ------------------------------------------------

    def handle_event(self, event: NetworkEvent) -> None:
        """React to back-link connection events; other events are ignored."""
        if event.server_type is not ServerType.BACK_TCP:
            return
        kind = event.event_type
        if kind is NetworkEventType.NEW_TCP_CONNECTION:
            self._on_new_connection(event)
        elif kind is NetworkEventType.CLIENT_CONNECT_SUCCESS:
            self._on_client_connected(event)
        elif kind is NetworkEventType.DISCONNECT:
            self._on_disconnect(event)
        elif kind is NetworkEventType.STREAM_DATA_NOT_EXPECTED:
            self._on_unexpected_data(event)

    def _on_new_connection(self, event: NetworkEvent) -> None:
        connection, event.connection = event.connection, None
        if connection is None:
            logger.error("NewTcpConnection event has no connection")
            return
        if event.remote_addr is None:
            logger.error("NewTcpConnection event has no remote address")
            return
        self.create_session(self._server_id, connection, event.remote_addr)

    def _on_client_connected(self, event: NetworkEvent) -> None:
        session = self.get_any_session(event.session_id)
        if session is None:
            return
        stream, event.connection = event.connection, None
        if stream is None:
            logger.error("ClientConnectSuccess for session %d has no stream", event.session_id)
            return
        if session.connection is None:
            logger.error("Session %d has no connection", event.session_id)
            return
        session.connection.set_tcp_stream(stream)

    def _on_disconnect(self, event: NetworkEvent) -> None:
        session_id = event.session_id
        if self._unauthorized.pop(session_id, None) is not None:
            logger.info("Removed unauthorized session %d due to disconnect", session_id)
        elif self._sessions.pop(session_id, None) is not None:
            logger.info("Removed authorized session %d due to disconnect", session_id)
        else:
            logger.debug("Disconnect event for unknown session %d", session_id)

    def _on_unexpected_data(self, event: NetworkEvent) -> None:
        session_id = event.session_id
        session = self._unauthorized.pop(session_id, None)
        if session is None:
            session = self._sessions.pop(session_id, None)
        if session is None:
            logger.debug("StreamDataNotExpected event for unknown session %d", session_id)
            return
        session.close()
        logger.info("Closed session %d due to unexpected stream data", session_id)


class BackSessionMessageDispatcher:
    """Routes messages arriving on back links to handlers registered by message id."""

    def __init__(self) -> None:
        self._handlers: dict[int, BackMessageHandler] = {}
        self._session_manager: Optional[BackSessionManager] = None

    def init(self, event_manager: Any, session_manager: BackSessionManager) -> bool:
        """Register for network events; return False if already initialized."""
        if self._session_manager is not None:
            return False
        event_manager.add_handler(self)
        self._session_manager = session_manager
        return True

    def register_handler(self, message_id: int, handler: BackMessageHandler) -> None:
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
        """Hand a back-link message to its handler, looking the session up authorized first."""
        if event.event_type is not NetworkEventType.NEW_MESSAGE:
            return
        if event.server_type is not ServerType.BACK_TCP:
            return
        if event.message_id is None or event.message is None:
            return
        handler = self._handlers.get(event.message_id)
        if handler is None:
            logger.debug("No handler found for message id %d", event.message_id)
            return
        if self._session_manager is None:
            logger.error("BackSessionMessageDispatcher is not initialized")
            return
        manager = self._session_manager
        session = manager.get_session(event.session_id)
        if session is None:
            session = manager.get_unauthorized_session(event.session_id)
        if session is None:
            logger.error("BackSession %d not found for message dispatch", event.session_id)
            return
        handler(session, event.message)