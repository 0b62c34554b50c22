"""Timers, tasks, sessions, session groups, routing and RPC dispatch for clustered game servers."""

__version__ = "0.1.0"

__all__ = [
    "back",
    "front",
    "router",
    "rpc",
    "rpc_dispatch",
    "session_group",
    "sessions",
    "task",
    "timer",
]