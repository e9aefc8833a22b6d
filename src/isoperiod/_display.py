from __future__ import annotations

from ._data import PeriodData


def display(period: PeriodData) -> str:
    out = _display_repetitions(period.repetitions)
    out += "P"

    if period.year > 0:
        out += f"{period.year}Y"
    if period.month > 0:
        out += f"{period.month}M"
    if period.day > 0:
        out += f"{period.day}D"

    clock = _display_clock(period)
    if clock:
        out += "T" + clock

    if period.is_zero:
        out += "T0S"

    return out


def _display_repetitions(repetitions: int) -> str:
    # Unbounded budgets carry no prefix at all; a zero budget is written "R/".
    if repetitions == 0:
        return "R/"
    if repetitions > 0:
        return f"R{repetitions}/"
    return ""


def _display_clock(period: PeriodData) -> str:
    out = ""
    if period.hour > 0:
        out += f"{period.hour}H"
    if period.minute > 0:
        out += f"{period.minute}M"
    if period.second > 0:
        out += f"{period.second}S"
    return out
