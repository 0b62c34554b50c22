from pantyhose.rpc_dispatch import RpcMessageDispatcher
from pantyhose.sessions import BackSession


def test_request_dispatch_passes_all_arguments():
    d = RpcMessageDispatcher()
    calls = []
    d.register_request_handler(12, lambda *args: calls.append(args))
    session = BackSession(session_id=3)
    assert d.dispatch_request_message(12, session, 77, 5, {"k": "v"}) is True
    assert calls == [(session, 77, 5, 12, {"k": "v"})]


def test_notify_dispatch_passes_all_arguments():
    d = RpcMessageDispatcher()
    calls = []
    d.register_notify_handler(8, lambda *args: calls.append(args))
    session = BackSession(session_id=2)
    assert d.dispatch_notify_message(8, session, 9, "payload") is True
    assert calls == [(session, 9, 8, "payload")]


def test_dispatch_without_handler_returns_false():
    d = RpcMessageDispatcher()
    session = BackSession(session_id=1)
    assert d.dispatch_request_message(1, session, 1, 1, None) is False
    assert d.dispatch_notify_message(1, session, 1, None) is False


def test_request_and_notify_are_separate():
    d = RpcMessageDispatcher()
    d.register_request_handler(4, lambda *a: None)
    assert d.has_request_handler(4) is True
    assert d.has_notify_handler(4) is False
    assert d.dispatch_notify_message(4, BackSession(session_id=1), 1, None) is False


def test_register_replaces_handler():
    d = RpcMessageDispatcher()
    hits = []
    d.register_notify_handler(6, lambda *a: hits.append("first"))
    d.register_notify_handler(6, lambda *a: hits.append("second"))
    d.dispatch_notify_message(6, BackSession(session_id=1), 0, None)
    assert hits == ["second"]
    assert d.notify_handler_count() == 1


def test_unregister():
    d = RpcMessageDispatcher()
    d.register_request_handler(2, lambda *a: None)
    d.register_notify_handler(2, lambda *a: None)
    assert d.unregister_request_handler(2) is True
    assert d.unregister_request_handler(2) is False
    assert d.unregister_notify_handler(2) is True
    assert d.unregister_notify_handler(2) is False


def test_ids_and_counts():
    d = RpcMessageDispatcher()
    for mid in (3, 1, 2):
        d.register_request_handler(mid, lambda *a: None)
    d.register_notify_handler(10, lambda *a: None)
    assert sorted(d.registered_request_message_ids()) == [1, 2, 3]
    assert d.registered_notify_message_ids() == [10]
    assert d.request_handler_count() == 3
    assert d.notify_handler_count() == 1


def test_clear_and_dispose():
    d = RpcMessageDispatcher()
    d.register_request_handler(1, lambda *a: None)
    d.register_notify_handler(1, lambda *a: None)
    d.clear_all_handlers()
    assert (d.request_handler_count(), d.notify_handler_count()) == (0, 0)
    d.register_request_handler(1, lambda *a: None)
    d.dispose()
    assert d.has_request_handler(1) is False