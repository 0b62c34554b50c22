import pytest

from pantyhose.front import FrontSessionManager, FrontSessionMessageDispatcher
from pantyhose.sessions import NetworkEvent, NetworkEventType, ServerType

ADDR = ("127.0.0.1", 4000)


class FakeConnection:
    def __init__(self, active=True):
        self.active = active
        self.processor = None
        self.reading = False
        self.closed = False
        self.sent = []

    def is_active(self):
        return self.active

    def send_message(self, message):
        self.sent.append(message)
        return True

    def close(self):
        self.closed = True
        self.active = False

    def set_msg_processor(self, processor):
        self.processor = processor

    def start_read_task(self):
        self.reading = True


class FakeEventManager:
    def __init__(self):
        self.handlers = []

    def add_handler(self, handler):
        self.handlers.append(handler)


@pytest.fixture
def manager():
    m = FrontSessionManager()
    m.init(FakeEventManager(), "processor")
    return m


def test_init_registers_once():
    events = FakeEventManager()
    m = FrontSessionManager()
    m.init(events, "processor")
    m.init(events, "other")
    assert events.handlers == [m]
    assert m.msg_processor == "processor"


def test_create_requires_init():
    with pytest.raises(RuntimeError):
        FrontSessionManager().create_tcp_session(FakeConnection(), ADDR)


def test_create_tcp_session_sets_processor_and_reads(manager):
    conn = FakeConnection()
    sid = manager.create_tcp_session(conn, ADDR)
    assert sid == 1
    assert conn.processor == "processor"
    assert conn.reading is True
    session = manager.get_session(sid)
    assert session.connection is conn
    assert session.remote_addr == ADDR


def test_websocket_session_ids_increase(manager):
    first = manager.create_tcp_session(FakeConnection(), ADDR)
    second = manager.create_websocket_session(FakeConnection(), ADDR)
    assert second == first + 1
    assert manager.session_count() == 2


def test_no_processor_does_not_start_reading():
    m = FrontSessionManager()
    m.init(FakeEventManager(), None)
    conn = FakeConnection()
    m.create_tcp_session(conn, ADDR)
    assert conn.reading is False


def test_counts_and_user_lookup(manager):
    a = manager.create_tcp_session(FakeConnection(), ADDR)
    manager.create_tcp_session(FakeConnection(active=False), ADDR)
    manager.get_session(a).user_id = 42
    manager.get_session(a).authenticated = True
    assert manager.connected_count() == 1
    assert manager.authenticated_count() == 1
    assert manager.get_session_by_user_id(42).session_id == a
    assert manager.get_session_by_user_id(7) is None


def test_remove_session_closes(manager):
    conn = FakeConnection()
    sid = manager.create_tcp_session(conn, ADDR)
    assert manager.remove_session(sid) is True
    assert conn.closed is True
    assert manager.remove_session(sid) is False


def test_update_all_drops_disconnected(manager):
    live = manager.create_tcp_session(FakeConnection(), ADDR)
    dead = manager.create_tcp_session(FakeConnection(active=False), ADDR)
    manager.update_all()
    assert manager.get_session(live) is not None and manager.get_session(dead) is None


def test_dispose_closes_everything(manager):
    conn = FakeConnection()
    manager.create_tcp_session(conn, ADDR)
    manager.dispose()
    assert conn.closed is True
    assert manager.session_count() == 0
    assert manager.is_initialized is False


def test_new_connection_event_creates_session(manager):
    conn = FakeConnection()
    event = NetworkEvent(
        NetworkEventType.NEW_TCP_CONNECTION, ServerType.FRONT_TCP,
        connection=conn, remote_addr=ADDR,
    )
    manager.handle_event(event)
    assert manager.session_count() == 1
    assert event.connection is None


def test_event_without_address_ignored(manager):
    manager.handle_event(NetworkEvent(
        NetworkEventType.NEW_TCP_CONNECTION, ServerType.FRONT_TCP, connection=FakeConnection()
    ))
    assert manager.session_count() == 0


def test_other_server_type_ignored(manager):
    manager.handle_event(NetworkEvent(
        NetworkEventType.NEW_TCP_CONNECTION, ServerType.BACK_TCP,
        connection=FakeConnection(), remote_addr=ADDR,
    ))
    assert manager.session_count() == 0


def test_disconnect_removes_without_close(manager):
    conn = FakeConnection()
    sid = manager.create_tcp_session(conn, ADDR)
    manager.handle_event(NetworkEvent(NetworkEventType.DISCONNECT, ServerType.FRONT_TCP, sid))
    assert manager.get_session(sid) is None
    assert conn.closed is False


def test_unexpected_data_closes(manager):
    conn = FakeConnection()
    sid = manager.create_tcp_session(conn, ADDR)
    manager.handle_event(
        NetworkEvent(NetworkEventType.STREAM_DATA_NOT_EXPECTED, ServerType.FRONT_TCP, sid)
    )
    assert manager.get_session(sid) is None
    assert conn.closed is True


def test_dispatcher_init_once(manager):
    d = FrontSessionMessageDispatcher()
    events = FakeEventManager()
    assert d.init(events, manager) is True
    assert d.init(events, manager) is False
    assert events.handlers == [d]


def test_dispatcher_handler_registry():
    d = FrontSessionMessageDispatcher()
    d.register_handler(5, lambda s, m: None)
    d.register_handler(9, lambda s, m: None)
    assert d.has_handler(5) is True
    assert sorted(d.registered_message_ids()) == [5, 9]
    assert d.unregister_handler(5) is True
    assert d.unregister_handler(5) is False
    d.clear_all_handlers()
    assert d.registered_message_ids() == []


@pytest.mark.parametrize("server_type", [ServerType.FRONT_TCP, ServerType.FRONT_WEBSOCKET])
def test_dispatcher_delivers(manager, server_type):
    d = FrontSessionMessageDispatcher()
    d.init(FakeEventManager(), manager)
    sid = manager.create_tcp_session(FakeConnection(), ADDR)
    got = []
    d.register_handler(3, lambda s, m: got.append((s.session_id, m)))
    d.handle_event(NetworkEvent(NetworkEventType.NEW_MESSAGE, server_type, sid, 3, "hello"))
    assert got == [(sid, "hello")]


def test_dispatcher_ignores_back_and_unknown(manager):
    d = FrontSessionMessageDispatcher()
    d.init(FakeEventManager(), manager)
    sid = manager.create_tcp_session(FakeConnection(), ADDR)
    got = []
    d.register_handler(3, lambda s, m: got.append(m))
    d.handle_event(NetworkEvent(NetworkEventType.NEW_MESSAGE, ServerType.BACK_TCP, sid, 3, "x"))
    d.handle_event(NetworkEvent(NetworkEventType.NEW_MESSAGE, ServerType.FRONT_TCP, sid + 50, 3, "y"))
    d.handle_event(NetworkEvent(NetworkEventType.NEW_MESSAGE, ServerType.FRONT_TCP, sid, 4, "z"))
    assert got == []


def test_dispatcher_dispose_clears(manager):
    d = FrontSessionMessageDispatcher()
    d.init(FakeEventManager(), manager)
    d.register_handler(1, lambda s, m: None)
    d.dispose()
    assert d.has_handler(1) is False
    assert d.init(FakeEventManager(), manager) is True