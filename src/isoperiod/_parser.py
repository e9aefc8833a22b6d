from __future__ import annotations

import re

from ._data import CALENDAR_FIELDS, CLOCK_FIELDS, FOREVER, NEVER, PeriodData, new_period_data
from ._error import PeriodError, Span

# Largest numeral accepted for any field (signed 64-bit range).
MAX_FIELD_VALUE = 2**63 - 1

# Every group is optional except the literal P; the first match anywhere in
# the input wins. A lone T with no clock field after it is accepted.
_PATTERN = re.compile(
    r"(?P<r>R)?(?P<repetitions>\d+)?/?"
    r"P(?P<year>\d+Y)?(?P<month>\d+M)?(?P<day>\d+D)?"
    r"(?P<t>T)?(?P<hour>\d+H)?(?P<minute>\d+M)?(?P<second>\d+S)?",
    re.ASCII,
)


def _to_int(field: str, numeral: str, span: Span, input_text: str) -> int:
    try:
        value = int(numeral, 10)
    except ValueError:
        raise PeriodError.number(
            f"invalid number {numeral!r} for field {field}",
            field,
            numeral,
            span,
            input_text,
        ) from None
    if value > MAX_FIELD_VALUE:
        raise PeriodError.number(
            f"invalid number {numeral!r} for field {field}: value out of range",
            field,
            numeral,
            span,
            input_text,
        )
    return value


def _component(match: re.Match[str], field: str, input_text: str) -> int:
    token = match.group(field)
    if token is None:
        return 0
    # Strip the unit designator (Y, M, D, H or S).
    start, end = match.span(field)
    return _to_int(field, token[:-1], Span(start, end - 1), input_text)


def parse(input_text: str) -> PeriodData:
    match = _PATTERN.search(input_text)
    if match is None:
        raise PeriodError.format("invalid repeat format", input_text)

    repetitions = NEVER
    if match.group("r"):
        repetitions = FOREVER
        numeral = match.group("repetitions")
        if numeral is not None:
            start, end = match.span("repetitions")
            repetitions = _to_int("repetitions", numeral, Span(start, end), input_text)

    components = {
        field: _component(match, field, input_text) for field in (*CALENDAR_FIELDS, *CLOCK_FIELDS)
    }
    return new_period_data(repetitions, **components)
