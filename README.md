# pantyhose

Building blocks for the main loop of a clustered game server. Everything is
meant to be driven from one thread, except `TaskManager.finish_task()`, which
may be called from any thread.

## Modules

- `pantyhose.timer` – `Timer` and `TimeManager`. Timers are kept in a min-heap
  ordered by trigger time. `add_timer(delay_time, callback, repeat_time=1)`
  returns a timer id; a negative `repeat_time` (such as `REPEAT_FOREVER`)
  repeats until `remove_timer()` is called. `tick()` runs every timer that is
  due, and `first_time_wait()` refreshes the clock and returns how many
  milliseconds the loop may sleep (`DEFAULT_WAIT_MS`, 1000, when nothing is
  scheduled).
- `pantyhose.task` – `Task` (abstract: `is_done()` and `done()`) and
  `TaskManager`. `add_task()` assigns and returns an id, `finish_task()` moves a
  running task to the finished list and calls the wake-up callable given to
  `init()` (it raises `KeyError` for an unknown id), and
  `process_finished_tasks()` calls `done()` on finished tasks, putting back any
  whose `is_done()` is still false.
- `pantyhose.sessions` – `Session`, `FrontSession` (client connections, with a
  `FrontSessionMetaData` recording which back server serves the client for
  each server type), `BackSession` (server-to-server links, with `server_id`
  and `server_type`), and the `NetworkEvent`, `NetworkEventType` and
  `ServerType` values that drive the managers.
- `pantyhose.session_group` – `FrontSessionGroup` and
  `FrontSessionGroupManager` for rooms or channels: optional size limits, a
  session belongs to at most one group, and `broadcast_to_group()` /
  `broadcast_to_group_by_name()` send a message to every connected member.
- `pantyhose.back` – `BackSessionManager` keeps new back sessions as
  unauthorized until `authorize_session()` moves them to the authorized set;
  `BackSessionMessageDispatcher` hands back-link messages to handlers
  registered by message id.
- `pantyhose.front` – `FrontSessionManager` and
  `FrontSessionMessageDispatcher`, the same for client sessions over TCP or
  WebSocket.
- `pantyhose.router` – `RouterManager` holds routing functions per server
  type and falls back to `default_router`, which prefers the back server bound
  in the client's metadata and otherwise picks an active one at random and
  records the choice.
- `pantyhose.rpc_dispatch` – `RpcMessageDispatcher` with request and notify
  handlers keyed by inner message id.
- `pantyhose.rpc` – `RpcManager`: `call_with_session()` routes a message to a
  back session of a server type, `call_to_server()` sends it to a back session
  by id. Both raise `RuntimeError` before `init()` has been called.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Example

```python
from pantyhose.timer import TimeManager
from pantyhose.session_group import FrontSessionGroupManager

timers = TimeManager()
timers.start()
timers.add_timer(500, lambda: print("tick"), 3)   # fire three times, every 500 ms
timers.first_time_wait()                          # refresh the clock
timers.tick()                                     # run whatever is due

groups = FrontSessionGroupManager()
lobby = groups.create_group("lobby", 100)
groups.add_session_to_group(lobby, 42)
print(groups.get_session_group_id(42))            # the lobby's id
```

## What you supply

The managers react to `NetworkEvent` objects passed to their `handle_event()`
methods and register themselves by calling `add_handler(self)` on the event
manager given to `init()`. Connections are objects you provide; sessions and
managers call these methods on them:

- `is_active()`, `send_message(message)` and `close()` on every connection;
- `set_msg_processor(processor)` and `start_read_task()` when a session is
  created with a message processor set;
- `connect_to(remote_addr)` for outgoing back links, if the connection has it,
  and `set_tcp_stream(stream)` when a `CLIENT_CONNECT_SUCCESS` event arrives.

## What it does not do

The package opens no sockets and runs no listeners, has no event queue, main
loop or server program, and provides no command. It does not encode or decode
messages: whatever is passed as a message is handed to the connection and the
handlers unchanged.

The package has no dependencies outside the standard library.