import pytest

from pantyhose.sessions import (
    BackSession,
    FrontSession,
    FrontSessionMetaData,
    NetworkEvent,
    NetworkEventType,
    ServerType,
)


class FakeConnection:
    def __init__(self, active=True, accept=True):
        self.active = active
        self.accept = accept
        self.sent = []
        self.closed = 0
        self.processor = None

    def is_active(self):
        return self.active

    def send_message(self, message):
        self.sent.append(message)
        return self.accept

    def close(self):
        self.closed += 1
        self.active = False

    def set_msg_processor(self, processor):
        self.processor = processor


def test_metadata_add_and_get():
    meta = FrontSessionMetaData()
    assert meta.add_server_meta("chat", 7) is True
    assert meta.get_server_id("chat") == 7
    assert meta.has_server_type("chat")
    assert meta.get_server_id("session") is None


def test_metadata_overwrite_keeps_one_entry():
    meta = FrontSessionMetaData()
    meta.add_server_meta("chat", 7)
    meta.add_server_meta("chat", 9)
    assert meta.get_server_id("chat") == 9
    assert len(meta) == 1


def test_metadata_remove():
    meta = FrontSessionMetaData()
    meta.add_server_meta("chat", 7)
    assert meta.remove_server_meta("chat") is True
    assert meta.remove_server_meta("chat") is False
    assert not meta.has_server_type("chat")


def test_metadata_server_types_and_clear():
    meta = FrontSessionMetaData()
    meta.add_server_meta("chat", 1)
    meta.add_server_meta("session", 2)
    assert sorted(meta.server_types()) == ["chat", "session"]
    meta.clear()
    assert meta.server_types() == []


def test_front_sessions_have_separate_metadata():
    a = FrontSession(1)
    b = FrontSession(2)
    a.metadata.add_server_meta("chat", 3)
    assert b.metadata.get_server_id("chat") is None


def test_send_on_connected_session():
    conn = FakeConnection()
    session = BackSession(1, conn, server_id=4)
    assert session.send_message("hello") is True
    assert conn.sent == ["hello"]


def test_send_reports_connection_failure():
    conn = FakeConnection(accept=False)
    session = FrontSession(1, conn)
    assert session.send_message("hello") is False


def test_send_on_disconnected_session():
    conn = FakeConnection(active=False)
    session = BackSession(1, conn)
    assert session.send_message("hello") is False
    assert conn.sent == []
    assert BackSession(2).send_message("x") is False


def test_close_detaches_connection_once():
    conn = FakeConnection()
    session = FrontSession(1, conn)
    assert session.is_connected()
    session.close()
    session.close()
    assert not session.is_connected()
    assert session.connection is None
    assert conn.closed == 1


def test_close_leaves_inactive_connection_alone():
    conn = FakeConnection(active=False)
    session = BackSession(1, conn)
    session.close()
    assert conn.closed == 0


def test_set_msg_processor_reaches_connection():
    conn = FakeConnection()
    session = BackSession(1, conn)
    processor = object()
    session.set_msg_processor(processor)
    assert conn.processor is processor


def test_set_msg_processor_without_connection():
    with pytest.raises(RuntimeError):
        BackSession(1).set_msg_processor(object())


def test_back_session_defaults():
    session = BackSession(5)
    assert session.server_type is None
    assert session.authenticated is False
    assert session.user_id is None


def test_network_event_defaults():
    event = NetworkEvent(NetworkEventType.DISCONNECT, ServerType.BACK_TCP, session_id=3)
    assert event.session_id == 3
    assert event.message_id is None
    assert event.remote_addr is None