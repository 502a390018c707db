"""
Timer abstraction owned by the round engine

The engine never sleeps or reads the wall clock directly. It asks a
Scheduler for the current time and for cancellable one-shot timers:

- ThreadingScheduler: monotonic clock + threading.Timer, for live play
- ManualScheduler: synthetic clock advanced by the caller, for tests and
  deterministic replays
"""

import heapq
import itertools
import logging
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable

logger = logging.getLogger(__name__)


class TimerHandle:
    """One-shot timer; cancel() is idempotent and a cancelled handle never fires"""

    def __init__(self, due_ms: float, callback: Callable[[], None]):
        self.due_ms = due_ms
        self.callback = callback
        self._cancelled = False
        self._fired = False
        self._timer: threading.Timer | None = None
        self._on_cancel: Callable[["TimerHandle"], None] | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def active(self) -> bool:
        return not (self._cancelled or self._fired)

    def cancel(self):
        self._cancelled = True
        if self._timer is not None:
            self._timer.cancel()
        if self._on_cancel is not None:
            on_cancel, self._on_cancel = self._on_cancel, None
            on_cancel(self)

    def _run(self):
        if not self.active:
            return
        self._fired = True
        self.callback()

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else "fired" if self._fired else "pending"
        return f"TimerHandle(due_ms={self.due_ms:.1f}, {state})"


class Scheduler(ABC):
    @abstractmethod
    def now_ms(self) -> float:
        """Current time in milliseconds (monotonic)"""

    @abstractmethod
    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        """Run callback once after delay_ms"""

    def shutdown(self):
        """Release scheduler resources (no-op by default)"""


class ThreadingScheduler(Scheduler):
    """Real-time scheduler: each timer runs its callback on a daemon thread"""

    def __init__(self):
        self._handles: set[TimerHandle] = set()
        self._lock = threading.Lock()

    def now_ms(self) -> float:
        return time.monotonic() * 1000.0

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        delay_ms = max(0.0, delay_ms)
        handle = TimerHandle(self.now_ms() + delay_ms, callback)

        def fire():
            with self._lock:
                self._handles.discard(handle)
            try:
                handle._run()
            except Exception as e:
                logger.error(f"Timer callback failed: {e}", exc_info=True)

        timer = threading.Timer(delay_ms / 1000.0, fire)
        timer.daemon = True
        handle._timer = timer
        handle._on_cancel = self._forget
        with self._lock:
            self._handles.add(handle)
        timer.start()
        return handle

    def pending(self) -> list[TimerHandle]:
        """Timers still tracked (started, not yet fired or cancelled)"""
        with self._lock:
            return list(self._handles)

    def _forget(self, handle: TimerHandle):
        with self._lock:
            self._handles.discard(handle)

    def shutdown(self):
        with self._lock:
            handles = list(self._handles)
            self._handles.clear()
        for handle in handles:
            handle.cancel()


class ManualScheduler(Scheduler):
    """
    Synthetic clock for tests and replays

    Nothing happens until advance() is called. Due timers fire in due-time
    order (ties in scheduling order) and now_ms() reads the timer's due time
    while its callback runs, so ticks land exactly on their interval.
    """

    def __init__(self, start_ms: float = 0.0):
        self._now = float(start_ms)
        self._queue: list[tuple[float, int, TimerHandle]] = []
        self._seq = itertools.count()

    def now_ms(self) -> float:
        return self._now

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(self._now + max(0.0, delay_ms), callback)
        heapq.heappush(self._queue, (handle.due_ms, next(self._seq), handle))
        return handle

    def advance(self, delta_ms: float) -> int:
        """
        Move the clock forward, firing every timer that falls due

        Returns:
            Number of callbacks run
        """
        if delta_ms < 0:
            raise ValueError(f"Cannot move a clock backwards ({delta_ms} ms)")
        target = self._now + delta_ms
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, handle = heapq.heappop(self._queue)
            if not handle.active:
                continue
            self._now = max(self._now, due)
            handle._run()
            fired += 1
        self._now = target
        return fired

    def advance_to(self, when_ms: float) -> int:
        return self.advance(max(0.0, when_ms - self._now))

    def pending(self) -> list[TimerHandle]:
        """Active timers in due order"""
        return [h for _, _, h in sorted(self._queue) if h.active]

    def shutdown(self):
        for _, _, handle in self._queue:
            handle.cancel()
        self._queue.clear()
