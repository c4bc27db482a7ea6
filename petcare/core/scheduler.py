# petcare/core/scheduler.py
"""Named, cancelable timer tasks driven by a clock.

Callbacks run one at a time and to completion, so a callback never observes
another callback's half-finished update. ``advance`` is the deterministic driver
used with a :class:`ManualClock`; ``run`` is the real-time asyncio loop.
"""
import asyncio
import heapq
import itertools
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

import structlog

from petcare.core.clock import ManualClock

log = structlog.get_logger(__name__)


@dataclass(order=True)
class _Task:
    due: datetime
    seq: int
    name: str = field(compare=False)
    callback: Callable[[], None] = field(compare=False)
    interval: Optional[float] = field(compare=False, default=None)
    cancelled: bool = field(compare=False, default=False)


class Scheduler:
    def __init__(self, clock):
        self.clock = clock
        self._queue: List[_Task] = []
        self._tasks: Dict[str, _Task] = {}
        self._seq = itertools.count()
        self._keep_running = False

    def every(self, name: str, seconds: float, callback: Callable[[], None]) -> None:
        """Run ``callback`` every ``seconds``; replaces any task with the same name."""
        if seconds <= 0:
            raise ValueError("interval must be positive")
        self._schedule(name, seconds, callback, interval=seconds)

    def call_later(self, name: str, seconds: float, callback: Callable[[], None]) -> None:
        """Run ``callback`` once after ``seconds``; replaces any task with the same name."""
        self._schedule(name, max(0.0, seconds), callback, interval=None)

    def cancel(self, name: str) -> bool:
        task = self._tasks.pop(name, None)
        if task is None:
            return False
        task.cancelled = True
        log.debug("task_cancelled", task=name)
        return True

    def cancel_prefix(self, prefix: str) -> int:
        names = [name for name in self._tasks if name.startswith(prefix)]
        for name in names:
            self.cancel(name)
        return len(names)

    def cancel_all(self) -> None:
        for task in self._tasks.values():
            task.cancelled = True
        self._tasks.clear()
        self._queue.clear()

    def is_scheduled(self, name: str) -> bool:
        return name in self._tasks

    @property
    def task_names(self) -> List[str]:
        return sorted(self._tasks)

    def next_due(self) -> Optional[datetime]:
        self._drop_cancelled()
        return self._queue[0].due if self._queue else None

    def run_pending(self) -> int:
        """Fire every task that is due at the clock's current time."""
        fired = 0
        now = self.clock.now()
        while True:
            self._drop_cancelled()
            if not self._queue or self._queue[0].due > now:
                return fired
            self._fire(heapq.heappop(self._queue))
            fired += 1

    def advance(self, seconds: float) -> int:
        """Move a manual clock forward, firing tasks in due order at their due time."""
        if not isinstance(self.clock, ManualClock):
            raise TypeError("advance() needs a ManualClock")
        target = self.clock.now() + timedelta(seconds=seconds)
        fired = 0
        while True:
            due = self.next_due()
            if due is None or due > target:
                break
            if due > self.clock.now():
                self.clock.set(due)
            fired += self.run_pending()
        self.clock.set(target)
        return fired

    async def run(self, poll_seconds: float = 0.5) -> None:
        """Real-time loop: poll the clock and fire due tasks until stopped or cancelled."""
        self._keep_running = True
        log.info("Scheduler loop started.", poll_seconds=poll_seconds)
        while self._keep_running:
            try:
                self.run_pending()
            except Exception as e:
                # Individual task failures are logged; the loop keeps the pet alive.
                log.error("Scheduler loop: unhandled error in task.", error=str(e), exc_info=True)
            try:
                await asyncio.sleep(poll_seconds)
            except asyncio.CancelledError:
                log.info("Scheduler loop cancelled.")
                break
        log.info("Scheduler loop stopped.")

    def stop(self) -> None:
        self._keep_running = False

    def _schedule(self, name, seconds, callback, interval):
        self.cancel(name)
        task = _Task(
            due=self.clock.now() + timedelta(seconds=seconds),
            seq=next(self._seq),
            name=name,
            callback=callback,
            interval=interval,
        )
        self._tasks[name] = task
        heapq.heappush(self._queue, task)

    def _drop_cancelled(self):
        while self._queue and self._queue[0].cancelled:
            heapq.heappop(self._queue)

    def _fire(self, task: _Task):
        if task.interval is None:
            self._tasks.pop(task.name, None)
        try:
            task.callback()
        finally:
            # A periodic task stays registered unless its callback cancelled it.
            if task.interval is not None and self._tasks.get(task.name) is task:
                task.due = task.due + timedelta(seconds=task.interval)
                now = self.clock.now()
                if task.due <= now - timedelta(seconds=task.interval):
                    task.due = now + timedelta(seconds=task.interval)
                task.seq = next(self._seq)
                heapq.heappush(self._queue, task)
