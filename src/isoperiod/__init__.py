from __future__ import annotations

import dataclasses
import threading
from collections.abc import Iterator
from datetime import datetime, timedelta
from typing import Any

from ._data import FOREVER, NEVER, PeriodData, new_period_data, period_data_from_dict
from ._display import display
from ._error import PeriodError, PeriodErrorKind, Span
from ._eval import next_from as _next_from
from ._eval import next_n_from as _next_n_from
from ._eval import occurrences as _occurrences
from ._parser import parse
from ._ticker import (
    DEFAULT_INTERVAL,
    DEFAULT_STOP_TIMEOUT,
    Clock,
    StopReason,
    Ticker,
    TickerState,
)


class Period:
    """An ISO 8601 repeating interval such as ``R5/PT30S``.

    Wraps an immutable `PeriodData`. The only mutable part is the slot for
    the notification stream started with `start()`; one stream may be active
    per period at a time.
    """

    _data: PeriodData

    def __init__(self, data: PeriodData) -> None:
        self._data = data
        self._ticker: Ticker | None = None
        self._lock = threading.Lock()

    @classmethod
    def new(
        cls,
        repetitions: int = NEVER,
        year: int = 0,
        month: int = 0,
        day: int = 0,
        hour: int = 0,
        minute: int = 0,
        second: int = 0,
    ) -> Period:
        return cls(new_period_data(repetitions, year, month, day, hour, minute, second))

    @classmethod
    def parse(cls, input_text: str) -> Period:
        """Parse ``[Rn/]P[nY][nM][nD][T[nH][nM][nS]]``.

        ``P1M`` is one month with no repetitions, ``R/PT1M`` one minute
        forever and ``R5/PT30S`` thirty seconds, five times.
        """
        return cls(parse(input_text))

    @classmethod
    def validate(cls, input_text: str) -> bool:
        try:
            parse(input_text)
            return True
        except PeriodError:
            return False

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Period:
        return cls(period_data_from_dict(raw))

    def to_dict(self) -> dict[str, int]:
        return self._data.to_dict()

    def with_repetitions(self, repetitions: int) -> Period:
        return Period(dataclasses.replace(self._data, repetitions=repetitions))

    def next_from(self, now: datetime) -> datetime | None:
        """Returns when the period next elapses after `now`, None if it never will.

        Lowering the repetition count between calls is up to the caller.
        """
        return _next_from(self._data, now)

    def next_n_from(self, now: datetime, n: int) -> list[datetime]:
        return _next_n_from(self._data, now, n)

    def occurrences(self, from_: datetime) -> Iterator[datetime]:
        """Returns a lazy iterator of occurrences after `from_`.

        Bounded periods yield `repetitions` items; unbounded ones iterate
        forever unless limited.
        """
        return _occurrences(self._data, from_)

    def start(
        self,
        interval: float = DEFAULT_INTERVAL,
        clock: Clock | None = None,
    ) -> Ticker:
        """Start a notification stream that ticks once per `interval` seconds.

        The stream closes by itself once the repetition budget is used up, or
        when `stop()` is called. Raises PeriodError if one is already running.
        """
        with self._lock:
            if self._ticker is not None and self._ticker.running:
                raise PeriodError.state("period is already running")
            self._ticker = Ticker(self._data, interval, clock)
            return self._ticker.start()

    def stop(self) -> None:
        """Stops the running stream, if any. Returns without waiting for it."""
        ticker = self._ticker
        if ticker is not None:
            ticker.stop()

    @property
    def running(self) -> bool:
        ticker = self._ticker
        return ticker is not None and ticker.running

    @property
    def ticker(self) -> Ticker | None:
        return self._ticker

    @property
    def data(self) -> PeriodData:
        return self._data

    @property
    def repetitions(self) -> int:
        return self._data.repetitions

    @property
    def year(self) -> int:
        return self._data.year

    @property
    def month(self) -> int:
        return self._data.month

    @property
    def day(self) -> int:
        return self._data.day

    @property
    def hour(self) -> int:
        return self._data.hour

    @property
    def minute(self) -> int:
        return self._data.minute

    @property
    def second(self) -> int:
        return self._data.second

    @property
    def duration(self) -> timedelta:
        return self._data.duration

    def __str__(self) -> str:
        return display(self._data)

    def __repr__(self) -> str:
        return f"Period({display(self._data)!r})"


__all__ = [
    "Period",
    "PeriodData",
    "PeriodError",
    "PeriodErrorKind",
    "Span",
    "Ticker",
    "TickerState",
    "StopReason",
    "Clock",
    "FOREVER",
    "NEVER",
    "DEFAULT_INTERVAL",
    "DEFAULT_STOP_TIMEOUT",
    "display",
    "parse",
]
