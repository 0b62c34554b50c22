"""Named groups of front sessions, with broadcast to every member."""

from __future__ import annotations

import itertools
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Optional

logger = logging.getLogger(__name__)


@dataclass
class FrontSessionGroup:
    """A set of session ids under a name, optionally capped in size."""

    group_id: int
    group_name: str
    max_sessions: Optional[int] = None
    _members: dict[int, None] = field(default_factory=dict, init=False, repr=False)

    def add_session(self, session_id: int) -> bool:
        """Add a session; return False if the group is full or already holds it."""
        if self.is_full():
            logger.error(
                "Group %d (%s) has reached max sessions limit: %s",
                self.group_id, self.group_name, self.max_sessions,
            )
            return False
        if session_id in self._members:
            logger.warning("Session %d already exists in group %d", session_id, self.group_id)
            return False
        self._members[session_id] = None
        return True

    def remove_session(self, session_id: int) -> bool:
        if self._members.pop(session_id, ...) is ...:
            logger.warning("Session %d not found in group %d", session_id, self.group_id)
            return False
        return True

    def contains_session(self, session_id: int) -> bool:
        return session_id in self._members

    def session_ids(self) -> list[int]:
        """Member ids in the order they joined."""
        return list(self._members)

    def session_count(self) -> int:
        return len(self._members)

    def is_empty(self) -> bool:
        return not self._members

    def is_full(self) -> bool:
        return self.max_sessions is not None and len(self._members) >= self.max_sessions

    def clear_sessions(self) -> None:
        count = len(self._members)
        self._members.clear()
        if count:
            logger.info("Cleared %d sessions from group %d", count, self.group_id)

    def available_slots(self) -> Optional[int]:
        """Free places left, or None when the group is unlimited."""
        if self.max_sessions is None:
            return None
        return max(self.max_sessions - len(self._members), 0)


class FrontSessionGroupManager:
    """Owns the groups and the session-to-group mapping; a session is in at most one group."""

    def __init__(self) -> None:
        self._groups: dict[int, FrontSessionGroup] = {}
        self._session_to_group: dict[int, int] = {}
        self._ids = itertools.count(1)

    def create_group(self, group_name: str, max_sessions: Optional[int] = None) -> int:
        group_id = next(self._ids)
        self._groups[group_id] = FrontSessionGroup(group_id, group_name, max_sessions)
        logger.info("Created front session group %d named %r", group_id, group_name)
        return group_id

    def remove_group(self, group_id: int) -> bool:
        group = self._groups.pop(group_id, None)
        if group is None:
            logger.error("Attempt to remove non-existent group %d", group_id)
            return False
        for session_id in group.session_ids():
            self._session_to_group.pop(session_id, None)
        return True

    def get_group(self, group_id: int) -> Optional[FrontSessionGroup]:
        return self._groups.get(group_id)

    def get_group_by_name(self, group_name: str) -> Optional[FrontSessionGroup]:
        return next((g for g in self._groups.values() if g.group_name == group_name), None)

    def add_session_to_group(self, group_id: int, session_id: int) -> bool:
        if session_id in self._session_to_group:
            logger.error("Session %d is already in a group", session_id)
            return False
        group = self._groups.get(group_id)
        if group is None:
            logger.error("Group %d does not exist", group_id)
            return False
        if not group.add_session(session_id):
            return False
        self._session_to_group[session_id] = group_id
        return True

    def remove_session_from_group(self, session_id: int) -> bool:
        group_id = self._session_to_group.get(session_id)
        if group_id is None:
            logger.warning("Session %d is not in any group", session_id)
            return False
        group = self._groups.get(group_id)
        if group is None:
            logger.warning("Session %d mapped to non-existent group %d", session_id, group_id)
            del self._session_to_group[session_id]
            return False
        if not group.remove_session(session_id):
            return False
        del self._session_to_group[session_id]
        return True

    def get_session_group_id(self, session_id: int) -> Optional[int]:
        return self._session_to_group.get(session_id)

    def get_session_group(self, session_id: int) -> Optional[FrontSessionGroup]:
        group_id = self._session_to_group.get(session_id)
        return None if group_id is None else self._groups.get(group_id)

    def broadcast_to_group(self, group_id: int, message: Any, front_session_manager: Any) -> int:
        """Send ``message`` to every connected member; return how many sends succeeded."""
        group = self._groups.get(group_id)
        if group is None:
            logger.error("Cannot broadcast to non-existent group %d", group_id)
            return 0
        sent = 0
        for session_id in group.session_ids():
            session = front_session_manager.get_session(session_id)
            if session is not None and session.is_connected() and session.send_message(message):
                sent += 1
        logger.debug("Broadcast message to %d sessions in group %d", sent, group_id)
        return sent

    def broadcast_to_group_by_name(self, group_name: str, message: Any, front_session_manager: Any) -> int:
        group = self.get_group_by_name(group_name)
        if group is None:
            logger.error("Cannot broadcast to non-existent group %r", group_name)
            return 0
        return self.broadcast_to_group(group.group_id, message, front_session_manager)

    def group_count(self) -> int:
        return len(self._groups)

    def total_sessions_in_groups(self) -> int:
        return sum(group.session_count() for group in self._groups.values())

    def groups_info(self) -> list[tuple[int, str, int, Optional[int]]]:
        """``(group_id, name, session_count, max_sessions)`` for each group."""
        return [
            (g.group_id, g.group_name, g.session_count(), g.max_sessions)
            for g in self._groups.values()
        ]

    def cleanup_empty_groups(self) -> int:
        empty = [gid for gid, group in self._groups.items() if group.is_empty()]
        for group_id in empty:
            self.remove_group(group_id)
        return len(empty)

    def cleanup_invalid_sessions(self, valid_session_ids: Iterable[int]) -> int:
        """Remove mapped sessions not in ``valid_session_ids``; return how many were removed."""
        valid = set(valid_session_ids)
        invalid = [sid for sid in self._session_to_group if sid not in valid]
        return sum(1 for sid in invalid if self.remove_session_from_group(sid))

    def clear_all_groups(self) -> None:
        self._groups.clear()
        self._session_to_group.clear()