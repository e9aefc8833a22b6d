from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from ._error import PeriodError

# Repetition budget: 0 never fires, > 0 fires exactly that often, < 0 forever.
NEVER = 0
FOREVER = -1

CALENDAR_FIELDS: tuple[str, ...] = ("year", "month", "day")
CLOCK_FIELDS: tuple[str, ...] = ("hour", "minute", "second")
FIELDS: tuple[str, ...] = ("repetitions", *CALENDAR_FIELDS, *CLOCK_FIELDS)


@dataclass(frozen=True, slots=True)
class PeriodData:
    repetitions: int = NEVER
    year: int = 0
    month: int = 0
    day: int = 0
    hour: int = 0
    minute: int = 0
    second: int = 0
    duration: timedelta = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "duration",
            timedelta(hours=self.hour, minutes=self.minute, seconds=self.second),
        )

    @property
    def is_zero(self) -> bool:
        """True when no calendar or clock component is positive."""
        return not any(getattr(self, name) > 0 for name in (*CALENDAR_FIELDS, *CLOCK_FIELDS))

    def to_dict(self) -> dict[str, int]:
        return {name: getattr(self, name) for name in FIELDS}


def new_period_data(
    repetitions: int = NEVER,
    year: int = 0,
    month: int = 0,
    day: int = 0,
    hour: int = 0,
    minute: int = 0,
    second: int = 0,
) -> PeriodData:
    values = {
        "year": year,
        "month": month,
        "day": day,
        "hour": hour,
        "minute": minute,
        "second": second,
    }
    for name, value in values.items():
        if value < 0:
            raise PeriodError.number(
                f"invalid number {value} for field {name}: must not be negative",
                name,
                str(value),
            )
    try:
        return PeriodData(repetitions=repetitions, **values)
    except OverflowError:
        clock = f"{hour}H{minute}M{second}S"
        raise PeriodError.number(
            f"invalid duration {clock}: value out of range", "duration", clock
        ) from None


def period_data_from_dict(raw: dict[str, Any]) -> PeriodData:
    unknown = sorted(set(raw) - set(FIELDS))
    if unknown:
        raise PeriodError.number(f"unknown period field: {unknown[0]}", unknown[0], "")
    values: dict[str, int] = {}
    for name in FIELDS:
        value = raw.get(name, 0)
        if isinstance(value, bool) or not isinstance(value, int):
            raise PeriodError.number(
                f"invalid number {value!r} for field {name}", name, repr(value)
            )
        values[name] = value
    return new_period_data(**values)
