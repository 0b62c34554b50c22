"""One-shot and repeating timers driven by a millisecond clock."""

from __future__ import annotations

import heapq
import itertools
import time
from dataclasses import InitVar, dataclass, field
from typing import Callable

TimerId = int
TimerCallback = Callable[[], None]

#: Wait returned by :meth:`TimeManager.first_time_wait` when no timer is pending.
DEFAULT_WAIT_MS = 1000
#: Pass as ``repeat_time`` to keep a timer firing until it is removed.
REPEAT_FOREVER = -1


def _monotonic_ms() -> int:
    return time.monotonic_ns() // 1_000_000


@dataclass(eq=False)
class Timer:
    """A scheduled callback that fires ``repeat_time`` times, ``delay_time`` ms apart."""

    id: TimerId
    delay_time: int
    repeat_time: int
    now: InitVar[int]
    callback: TimerCallback
    next_trigger: int = field(init=False)

    def __post_init__(self, now: int) -> None:
        self.next_trigger = now + self.delay_time

    def is_ready(self, now: int) -> bool:
        """True once ``now`` has reached the trigger time."""
        return now >= self.next_trigger

    def execute(self) -> None:
        self.callback()

    def reset_next_trigger(self, now: int) -> None:
        self.next_trigger = now + self.delay_time


class TimeManager:
    """Keeps timers ordered by trigger time and runs those that are due."""

    def __init__(self, clock: Callable[[], int] = _monotonic_ms) -> None:
        self._clock = clock
        self._origin = clock()
        self._heap: list[tuple[int, int, Timer]] = []
        self._active: set[TimerId] = set()
        self._ids = itertools.count(1)
        self.now = 0

    def start(self) -> None:
        """Restart the elapsed-time origin at the current clock reading."""
        self._origin = self._clock()
        self.now = 0

    def _refresh(self) -> None:
        self.now = self._clock() - self._origin

    def _schedule(self, timer: Timer) -> None:
        heapq.heappush(self._heap, (timer.next_trigger, timer.id, timer))

    def timer_count(self) -> int:
        return len(self._active)

    def add_timer(self, delay_time: int, callback: TimerCallback, repeat_time: int = 1) -> TimerId:
        """Schedule ``callback`` after ``delay_time`` ms; return the new timer's id."""
        if delay_time < 0:
            raise ValueError("delay_time must not be negative")
        if repeat_time == 0:
            raise ValueError("repeat_time must be positive, or negative to repeat forever")
        timer = Timer(next(self._ids), delay_time, repeat_time, self.now, callback)
        self._schedule(timer)
        self._active.add(timer.id)
        return timer.id

    def remove_timer(self, timer_id: TimerId) -> bool:
        """Cancel a timer; return False if it was not active."""
        if timer_id in self._active:
            self._active.remove(timer_id)
            return True
        return False

    def first_time_wait(self) -> int:
        """Refresh the clock and return the milliseconds until the next timer is due."""
        self._refresh()
        if not self._heap:
            return DEFAULT_WAIT_MS
        return max(self._heap[0][0] - self.now, 0)

    def tick(self) -> None:
        """Run every timer that is due at the current time."""
        ready: list[Timer] = []
        while self._heap and self._heap[0][2].is_ready(self.now):
            ready.append(heapq.heappop(self._heap)[2])

        for timer in ready:
            if timer.id not in self._active:
                continue
            timer.execute()
            if timer.repeat_time < 0:
                timer.reset_next_trigger(self.now)
                self._schedule(timer)
                continue
            timer.repeat_time -= 1
            if timer.repeat_time > 0:
                timer.reset_next_trigger(self.now)
                self._schedule(timer)
            else:
                self._active.discard(timer.id)

    def clear_all_timers(self) -> None:
        self._heap.clear()
        self._active.clear()