from __future__ import annotations

import itertools
from collections.abc import Iterator
from datetime import datetime, timedelta, timezone

from ._data import PeriodData
from ._display import display
from ._error import PeriodError

# =============================================================================
# Calendar vs. clock arithmetic
# =============================================================================
# Years, months and days are wall-clock calendar steps: the time of day is
# kept and overflow is normalized forward, so Jan 31 + 1 month lands on
# Mar 3 (Mar 2 in leap years) instead of being clamped to the month end.
#
# Hours, minutes and seconds are an exact elapsed duration. For aware
# datetimes it is added on the UTC timeline, so a DST transition neither
# stretches nor shrinks it. Naive datetimes use plain arithmetic.
# =============================================================================


def _shift_elapsed(dt: datetime, delta: timedelta) -> datetime:
    """Add an exact elapsed duration, normalizing DST gaps through UTC."""
    tz = dt.tzinfo
    if tz is None or dt.utcoffset() is None:
        return dt + delta
    return (dt.astimezone(timezone.utc) + delta).astimezone(tz)


def _shift_calendar(dt: datetime, years: int, months: int, days: int) -> datetime:
    if not (years or months or days):
        return dt
    total = dt.month - 1 + months
    year = dt.year + years + total // 12
    month = total % 12 + 1
    # Start from the first of the target month so day overflow rolls over.
    shifted = dt.replace(year=year, month=month, day=1) + timedelta(days=dt.day - 1 + days)
    return _shift_elapsed(shifted, timedelta(0))


def _advance(period: PeriodData, dt: datetime) -> datetime:
    try:
        shifted = _shift_calendar(dt, period.year, period.month, period.day)
        return _shift_elapsed(shifted, period.duration)
    except (OverflowError, ValueError) as exc:
        raise PeriodError.range(
            f"{display(period)} from {dt.isoformat()} is outside the supported date range"
        ) from exc


def next_from(period: PeriodData, now: datetime) -> datetime | None:
    """Return the time the period next elapses after `now`.

    None means the period will never elapse again (zero repetitions). The
    repetition budget is not consumed; lowering it is up to the caller.
    Raises PeriodError (kind "range") when the result falls outside the years
    a datetime can hold.
    """
    if period.repetitions == 0:
        return None
    return _advance(period, now)


def next_n_from(period: PeriodData, now: datetime, n: int) -> list[datetime]:
    return list(itertools.islice(occurrences(period, now), n))


# --- Iterator functions ---


def occurrences(period: PeriodData, from_: datetime) -> Iterator[datetime]:
    """Returns a lazy iterator of successive occurrences after `from_`.

    Each occurrence is computed from the previous one. A local copy of the
    repetition budget is consumed, so a bounded period yields exactly
    `repetitions` items and an unbounded one iterates forever.
    """
    remaining = period.repetitions
    current = from_
    while remaining != 0:
        current = _advance(period, current)
        yield current
        if remaining > 0:
            remaining -= 1
