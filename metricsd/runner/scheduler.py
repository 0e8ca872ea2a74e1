"""
Scheduler - Single-threaded cooperative delayed-task queue.

All periodic work in the daemon runs on one logical timeline:
- Each producer registers a (delay, handler) pair
- A handler runs to completion and returns a TickResult
- TickResult.next_delay re-arms the handler; None retires it

Handlers never run concurrently with each other. Other threads (signal
listeners) may hand work to the timeline with call_soon(); it runs on the
next pass of the loop, not on the caller's thread.
"""

import heapq
import itertools
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TickResult:
    """
    Outcome of one handler run.

    succeeded: whether the handler produced its samples this time
    next_delay: seconds until the handler should run again (None = stop)
    """
    succeeded: bool
    next_delay: Optional[float] = None

    @property
    def should_reschedule(self) -> bool:
        return self.next_delay is not None

    @classmethod
    def ok(cls, next_delay: Optional[float] = None) -> "TickResult":
        return cls(True, next_delay)

    @classmethod
    def failed(cls, next_delay: Optional[float] = None) -> "TickResult":
        return cls(False, next_delay)


Handler = Callable[[], TickResult]


@dataclass(order=True)
class ScheduledTask:
    """A handler waiting in the queue."""
    due: float
    seq: int
    name: str = field(compare=False)
    delay: float = field(compare=False)
    handler: Handler = field(compare=False)
    cancelled: bool = field(default=False, compare=False)
    # Queued by call_soon(): never named in the registry, never re-armed.
    one_shot: bool = field(default=False, compare=False)


class Scheduler:
    """
    Delayed-task queue driven by a monotonic clock.

    Usage:
        scheduler = Scheduler()
        scheduler.schedule("meminfo", 30, sampler.run)
        scheduler.run_forever()    # until stop()
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self._queue: List[ScheduledTask] = []
        self._tasks: Dict[str, ScheduledTask] = {}
        self._seq = itertools.count()
        self._lock = threading.Lock()
        self._wakeup = threading.Event()
        self._running = False
        self._stopped = False

    @property
    def running(self) -> bool:
        return self._running

    def schedule(self, name: str, delay: float, handler: Handler) -> ScheduledTask:
        """
        Arm a handler to run after `delay` seconds.

        A handler already registered under the same name is replaced.
        """
        if delay < 0:
            raise ValueError(f"Negative delay for {name}: {delay}")

        with self._lock:
            if self._stopped:
                logger.debug("scheduler stopped, not arming %s", name)
                return ScheduledTask(self.clock() + delay, -1, name, delay, handler, cancelled=True)

            previous = self._tasks.pop(name, None)
            if previous:
                previous.cancelled = True

            task = ScheduledTask(
                due=self.clock() + delay,
                seq=next(self._seq),
                name=name,
                delay=delay,
                handler=handler,
            )
            heapq.heappush(self._queue, task)
            self._tasks[name] = task

        self._wakeup.set()
        return task

    def call_soon(self, name: str, func: Callable[[], None]):
        """
        Queue a one-shot callable on the timeline (thread-safe).

        Every call queues its own run; calls sharing a name do not replace
        each other, and a call that raises is not retried.
        """
        def one_shot() -> TickResult:
            func()
            return TickResult.ok()

        with self._lock:
            if self._stopped:
                logger.debug("scheduler stopped, dropping %s", name)
                return
            task = ScheduledTask(
                due=self.clock(),
                seq=next(self._seq),
                name=name,
                delay=0,
                handler=one_shot,
                one_shot=True,
            )
            heapq.heappush(self._queue, task)

        self._wakeup.set()

    def cancel(self, name: str) -> bool:
        with self._lock:
            task = self._tasks.pop(name, None)
            if task is None:
                return False
            task.cancelled = True
            return True

    def pending(self) -> List[str]:
        """Names of armed handlers, soonest first."""
        with self._lock:
            live = sorted(t for t in self._queue if not t.cancelled)
        return [t.name for t in live]

    def next_due(self) -> Optional[float]:
        with self._lock:
            self._drop_cancelled()
            return self._queue[0].due if self._queue else None

    def run_pending(self) -> int:
        """
        Run every handler whose due time has passed.

        Handlers re-armed during this pass run on a later pass, never in
        this one.

        Returns:
            Number of handlers run
        """
        now = self.clock()
        due: List[ScheduledTask] = []

        with self._lock:
            while self._queue and self._queue[0].due <= now:
                task = heapq.heappop(self._queue)
                if task.cancelled:
                    continue
                if self._tasks.get(task.name) is task:
                    del self._tasks[task.name]
                due.append(task)

        for task in due:
            if self._stopped:
                break
            result = self._run_task(task)
            if result.should_reschedule and not task.one_shot:
                self.schedule(task.name, result.next_delay, task.handler)

        return len(due)

    def run_forever(self, idle_timeout: float = 1.0):
        """
        Run handlers as they fall due until stop() is called.

        Args:
            idle_timeout: Upper bound on a single wait, so stop() and
                call_soon() are noticed promptly
        """
        self._running = True
        try:
            while not self._stopped:
                self.run_pending()
                next_due = self.next_due()
                timeout = idle_timeout
                if next_due is not None:
                    timeout = max(0.0, min(idle_timeout, next_due - self.clock()))
                self._wakeup.wait(timeout)
                self._wakeup.clear()
        finally:
            self._running = False

    def stop(self):
        """Stop the loop and drop every armed handler."""
        with self._lock:
            self._stopped = True
            for task in self._queue:
                task.cancelled = True
            self._queue = []
            self._tasks = {}
        self._wakeup.set()

    def _run_task(self, task: ScheduledTask) -> TickResult:
        try:
            result = task.handler()
        except Exception:
            if task.one_shot:
                logger.exception("queued call %s failed", task.name)
                return TickResult.failed()
            logger.exception("handler %s failed, re-arming in %.0fs", task.name, task.delay)
            return TickResult.failed(task.delay)

        if result is None:
            return TickResult.ok()
        if not result.succeeded:
            logger.debug("handler %s did not complete this tick", task.name)
        return result

    def _drop_cancelled(self):
        while self._queue and self._queue[0].cancelled:
            heapq.heappop(self._queue)

