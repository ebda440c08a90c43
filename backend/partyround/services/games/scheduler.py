import heapq
import itertools
import logging
import threading
import time
from typing import Callable, List, Optional, Tuple


logger = logging.getLogger(__name__)


class TimerHandle:
    """A pending callback returned by ``call_later``.

    Cancelling is idempotent: cancelling a timer that already fired or was
    already cancelled does nothing.
    """

    def __init__(self, deadline: float, callback: Callable[[], None], label: str = ''):
        self.deadline = deadline
        self.label = label
        self._callback = callback
        self.cancelled = False
        self.fired = False

    @property
    def pending(self) -> bool:
        return not (self.cancelled or self.fired)

    def cancel(self) -> None:
        if self.pending:
            self.cancelled = True

    def _run(self) -> None:
        if not self.pending:
            return
        self.fired = True
        self._callback()


class BackgroundScheduler:
    """Runs timers as Socket.IO background tasks.

    Each callback runs while holding ``lock`` so it is serialized against the
    socket handlers mutating the same game state. The cancelled flag is
    checked after the lock is acquired, so a timer cancelled while its worker
    was waiting on the lock never fires.
    """

    def __init__(self, socketio, lock: Optional[threading.RLock] = None):
        self._socketio = socketio
        self.lock = lock or threading.RLock()

    def now(self) -> float:
        return time.time()

    def call_later(self, delay: float, callback: Callable[[], None], label: str = '') -> TimerHandle:
        handle = TimerHandle(self.now() + delay, callback, label)
        logger.debug(f"[timer-set] {label} delay={delay}s deadline={handle.deadline}")

        def _worker():
            self._socketio.sleep(delay)
            with self.lock:
                if not handle.pending:
                    logger.debug(f"[timer-abort] {label} cancelled")
                    return
                logger.debug(f"[timer-fire] {label}")
                try:
                    handle._run()
                except Exception:
                    logger.exception(f"[timer-error] {label}")
                    raise

        self._socketio.start_background_task(_worker)
        return handle


class ManualScheduler:
    """Virtual clock scheduler; nothing fires until ``advance`` is called."""

    def __init__(self, start: float = 0.0, lock: Optional[threading.RLock] = None):
        self._now = start
        self._queue: List[Tuple[float, int, TimerHandle]] = []
        self._seq = itertools.count()
        self.lock = lock or threading.RLock()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None], label: str = '') -> TimerHandle:
        handle = TimerHandle(self._now + delay, callback, label)
        heapq.heappush(self._queue, (handle.deadline, next(self._seq), handle))
        return handle

    def pending_count(self) -> int:
        return sum(1 for _, _, h in self._queue if h.pending)

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing due timers in deadline order.

        Timers scheduled by a callback fire in the same call if their
        deadline falls inside the window.
        """
        target = self._now + seconds
        while self._queue and self._queue[0][0] <= target:
            deadline, _, handle = heapq.heappop(self._queue)
            self._now = max(self._now, deadline)
            with self.lock:
                handle._run()
        self._now = target
