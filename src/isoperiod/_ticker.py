from __future__ import annotations

import logging
import threading
import time
from collections import deque
from collections.abc import Callable, Iterator
from datetime import datetime, timezone
from enum import Enum
from types import TracebackType

from ._data import PeriodData
from ._error import PeriodError

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 1.0
DEFAULT_STOP_TIMEOUT = 5.0

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Default clock, UTC for deterministic behavior."""
    return datetime.now(timezone.utc)


class TickerState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    TERMINATING = "terminating"
    STOPPED = "stopped"

    def __str__(self) -> str:
        return self.value


class StopReason(Enum):
    EXHAUSTED = "exhausted"  # repetition budget reached zero
    CANCELLED = "cancelled"  # stop() was called
    FAILED = "failed"  # the clock raised

    def __str__(self) -> str:
        return self.value


class _Handoff:
    """Unbuffered rendezvous: an offer only succeeds while a receiver waits."""

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._items: deque[datetime] = deque()
        self._waiting = 0
        self._closed = False

    def offer(self, item: datetime) -> bool:
        with self._cond:
            if self._closed or self._waiting <= len(self._items):
                return False
            self._items.append(item)
            self._cond.notify()
            return True

    def receive(self, timeout: float | None = None) -> datetime | None:
        with self._cond:
            self._waiting += 1
            try:
                self._cond.wait_for(lambda: self._items or self._closed, timeout)
                if self._items:
                    return self._items.popleft()
                return None
            finally:
                self._waiting -= 1

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()


class Ticker:
    """Cancellable stream of ticks that counts down a period's repetitions.

    Every `interval` seconds the current time is offered to whoever is
    blocked in iteration or `get()`. Ticks nobody is waiting for are dropped
    and counted, never queued. A bounded budget closes the stream after that
    many ticks, a zero budget closes it at once and an unbounded one runs
    until `stop()`.
    """

    def __init__(
        self,
        period: PeriodData,
        interval: float = DEFAULT_INTERVAL,
        clock: Clock | None = None,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"tick interval must be positive, got {interval}")
        self._period = period
        self._interval = interval
        self._clock = clock or utc_now
        self._done = threading.Event()
        self._handoff = _Handoff()
        self._lock = threading.Lock()
        self._state = TickerState.IDLE
        self._stop_reason: StopReason | None = None
        self._emitted = 0
        self._dropped = 0
        self._thread: threading.Thread | None = None

    def start(self) -> Ticker:
        with self._lock:
            if self._state is not TickerState.IDLE:
                raise PeriodError.state(f"ticker already started (state: {self._state})")
            self._state = TickerState.RUNNING
        logger.debug(
            "ticker started: repetitions=%d interval=%.3fs",
            self._period.repetitions,
            self._interval,
        )
        self._thread = threading.Thread(target=self._run, name="isoperiod-ticker", daemon=True)
        self._thread.start()
        return self

    def stop(self) -> None:
        """Request cancellation and return immediately.

        Does nothing unless the ticker is running.
        """
        with self._lock:
            if self._state is not TickerState.RUNNING:
                return
        self._done.set()
        logger.debug("ticker stop requested")

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the background thread; True once it has finished."""
        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def close(self, timeout: float = DEFAULT_STOP_TIMEOUT) -> None:
        self.stop()
        if not self.join(timeout):
            logger.warning("ticker did not stop within %.3fs", timeout)
            raise PeriodError.state(f"ticker did not stop within {timeout}s")

    def get(self, timeout: float | None = None) -> datetime | None:
        """Wait for the next tick; None on timeout or once the stream is closed."""
        return self._handoff.receive(timeout)

    # --- Background activity ---

    def _run(self) -> None:
        remaining = self._period.repetitions
        deadline = time.monotonic()
        try:
            while remaining != 0:
                deadline += self._interval
                now = time.monotonic()
                if deadline < now:
                    # Missed ticks are skipped, not replayed.
                    deadline = now
                if self._done.wait(deadline - now):
                    self._finish(StopReason.CANCELLED)
                    return

                try:
                    tick = self._clock()
                except Exception:
                    logger.exception("ticker clock failed")
                    self._finish(StopReason.FAILED)
                    return
                self._emit(tick)

                if remaining > 0:
                    remaining -= 1
            self._terminate()
        finally:
            self._handoff.close()
            with self._lock:
                self._state = TickerState.STOPPED

    def _emit(self, tick: datetime) -> None:
        if not self._done.is_set() and self._handoff.offer(tick):
            self._emitted += 1
        else:
            self._dropped += 1
            logger.debug("tick dropped at %s: no receiver waiting", tick.isoformat())

    def _terminate(self) -> None:
        with self._lock:
            self._state = TickerState.TERMINATING
        self._done.set()
        self._finish(StopReason.EXHAUSTED)

    def _finish(self, reason: StopReason) -> None:
        self._stop_reason = reason
        self._handoff.close()
        with self._lock:
            self._state = TickerState.STOPPED
        logger.debug(
            "ticker %s after %d ticks (%d dropped)", reason, self._emitted, self._dropped
        )

    # --- Introspection ---

    @property
    def state(self) -> TickerState:
        with self._lock:
            return self._state

    @property
    def running(self) -> bool:
        return self.state in (TickerState.RUNNING, TickerState.TERMINATING)

    @property
    def stop_reason(self) -> StopReason | None:
        return self._stop_reason

    @property
    def emitted(self) -> int:
        return self._emitted

    @property
    def dropped(self) -> int:
        return self._dropped

    @property
    def interval(self) -> float:
        return self._interval

    # --- Protocols ---

    def __iter__(self) -> Iterator[datetime]:
        return self

    def __next__(self) -> datetime:
        tick = self._handoff.receive()
        if tick is None:
            raise StopIteration
        return tick

    def __enter__(self) -> Ticker:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"Ticker(state={self.state}, repetitions={self._period.repetitions}, "
            f"interval={self._interval})"
        )
