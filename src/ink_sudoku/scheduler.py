"""
Deferred tasks on the single owner thread.

All board mutation and highlight transitions run on one owner loop. A
scheduler hands out cancellable handles for delayed callbacks on that
loop: ``TkScheduler`` uses the Tk main loop, ``ManualScheduler`` is a
virtual clock that only moves when told to.
"""

from __future__ import annotations

import heapq
import itertools
import time
from typing import Any, Callable, List, Optional, Tuple


class ScheduledCall:
    """Handle for a pending deferred callback."""

    def __init__(self, canceller: Optional[Callable[[], None]] = None) -> None:
        self._canceller = canceller
        self.cancelled = False
        self.fired = False

    @property
    def pending(self) -> bool:
        return not (self.cancelled or self.fired)

    def cancel(self) -> None:
        if not self.pending:
            return
        self.cancelled = True
        if self._canceller is not None:
            self._canceller()


class Scheduler:
    """Interface for the owner loop."""

    def now(self) -> float:
        raise NotImplementedError

    def call_later(self, delay: float, callback: Callable[[], Any]) -> ScheduledCall:
        raise NotImplementedError


class TkScheduler(Scheduler):
    """Runs callbacks on the Tk main loop via ``after``."""

    def __init__(self, widget) -> None:
        self.widget = widget

    def now(self) -> float:
        return time.monotonic()

    def call_later(self, delay: float, callback: Callable[[], Any]) -> ScheduledCall:
        handle = ScheduledCall()

        def _run() -> None:
            if handle.pending:
                handle.fired = True
                callback()

        after_id = self.widget.after(max(0, int(round(delay * 1000))), _run)
        handle._canceller = lambda: self.widget.after_cancel(after_id)
        return handle


class ManualScheduler(Scheduler):
    """Deterministic virtual clock; ``advance`` fires due callbacks in order."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = float(start)
        self._queue: List[Tuple[float, int, ScheduledCall, Callable[[], Any]]] = []
        self._counter = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], Any]) -> ScheduledCall:
        handle = ScheduledCall()
        heapq.heappush(self._queue, (self._now + max(0.0, delay), next(self._counter), handle, callback))
        return handle

    def pending_count(self) -> int:
        return sum(1 for _, _, handle, _ in self._queue if handle.pending)

    def advance(self, seconds: float) -> int:
        """Move the clock forward, firing everything due on the way."""
        target = self._now + max(0.0, seconds)
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, handle, callback = heapq.heappop(self._queue)
            if not handle.pending:
                continue
            self._now = max(self._now, due)
            handle.fired = True
            callback()
            fired += 1
        self._now = target
        return fired

    def run_pending(self) -> int:
        """Advance until nothing is scheduled any more."""
        fired = 0
        while self._queue:
            due = self._queue[0][0]
            fired += self.advance(max(0.0, due - self._now))
        return fired
