"""Front and back sessions, their metadata, and the network events that drive them."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Optional, Protocol

logger = logging.getLogger(__name__)

Address = tuple[str, int]


class ServerType(Enum):
    """Which listener or link a network event came from."""

    BACK_TCP = auto()
    FRONT_TCP = auto()
    FRONT_WEBSOCKET = auto()


class NetworkEventType(Enum):
    NEW_TCP_CONNECTION = auto()
    NEW_WEBSOCKET_CONNECTION = auto()
    CLIENT_CONNECT_SUCCESS = auto()
    NEW_MESSAGE = auto()
    DISCONNECT = auto()
    STREAM_DATA_NOT_EXPECTED = auto()


@dataclass
class NetworkEvent:
    """One event taken off the network queue."""

    event_type: NetworkEventType
    server_type: ServerType
    session_id: int = 0
    message_id: Optional[int] = None
    message: Any = None
    connection: Any = None
    remote_addr: Optional[Address] = None


class Connection(Protocol):
    """What a session needs from the transport underneath it."""

    def is_active(self) -> bool: ...

    def send_message(self, message: Any) -> bool: ...

    def close(self) -> None: ...


@dataclass(eq=False)
class Session:
    """A peer connection with identity and authentication state."""

    session_id: int
    connection: Optional[Connection] = None
    remote_addr: Optional[Address] = None
    user_id: Optional[int] = None
    authenticated: bool = False

    def is_connected(self) -> bool:
        return self.connection is not None and self.connection.is_active()

    def close(self) -> None:
        """Shut the connection down and detach it; does nothing if already closed."""
        if not self.is_connected():
            return
        connection, self.connection = self.connection, None
        connection.close()
        logger.debug("Session %d closed", self.session_id)

    def send_message(self, message: Any) -> bool:
        """Send over the connection; return False when disconnected or the send fails."""
        if not self.is_connected():
            logger.error("Attempt to send message on disconnected session %d", self.session_id)
            return False
        sent = self.connection.send_message(message)
        if not sent:
            logger.error("Session %d failed to send message", self.session_id)
        return sent


@dataclass
class FrontSessionMetaData:
    """Which backend server a client is bound to, per server type."""

    server_meta: dict[str, int] = field(default_factory=dict)

    def add_server_meta(self, server_type: str, server_id: int) -> bool:
        old = self.server_meta.get(server_type)
        self.server_meta[server_type] = server_id
        if old is None:
            logger.info("Added server meta for type %r: %d", server_type, server_id)
        elif old != server_id:
            logger.info("Updated server meta for type %r: %d -> %d", server_type, old, server_id)
        return True

    def remove_server_meta(self, server_type: str) -> bool:
        if self.server_meta.pop(server_type, None) is None:
            logger.debug("Server meta not found for type %r", server_type)
            return False
        return True

    def get_server_id(self, server_type: str) -> Optional[int]:
        return self.server_meta.get(server_type)

    def has_server_type(self, server_type: str) -> bool:
        return server_type in self.server_meta

    def server_types(self) -> list[str]:
        return list(self.server_meta)

    def clear(self) -> None:
        self.server_meta.clear()

    def __len__(self) -> int:
        return len(self.server_meta)


@dataclass(eq=False)
class BackSession(Session):
    """A link to another server in the cluster."""

    server_id: int = 0
    server_type: Optional[str] = None

    def set_msg_processor(self, msg_processor: Any) -> None:
        """Hand the message processor to the underlying connection."""
        if self.connection is None:
            raise RuntimeError(f"back session {self.session_id} has no connection")
        self.connection.set_msg_processor(msg_processor)


@dataclass(eq=False)
class FrontSession(Session):
    """A client connection, TCP or WebSocket."""

    metadata: FrontSessionMetaData = field(default_factory=FrontSessionMetaData)