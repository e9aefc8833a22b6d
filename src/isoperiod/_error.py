from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


@dataclass(frozen=True, slots=True)
class Span:
    start: int
    end: int


PeriodErrorKind = Literal["format", "number", "range", "state"]


class PeriodError(Exception):
    kind: PeriodErrorKind
    span: Span | None
    input_text: str | None
    field: str | None
    value: str | None

    def __init__(
        self,
        kind: PeriodErrorKind,
        message: str,
        span: Span | None = None,
        input_text: str | None = None,
        field: str | None = None,
        value: str | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.span = span
        self.input_text = input_text
        self.field = field
        self.value = value

    @classmethod
    def format(cls, message: str, input_text: str) -> PeriodError:
        return cls("format", message, Span(0, len(input_text)), input_text)

    @classmethod
    def number(
        cls,
        message: str,
        field: str,
        value: str,
        span: Span | None = None,
        input_text: str | None = None,
    ) -> PeriodError:
        return cls("number", message, span, input_text, field, value)

    @classmethod
    def range(cls, message: str) -> PeriodError:
        return cls("range", message)

    @classmethod
    def state(cls, message: str) -> PeriodError:
        return cls("state", message)

    def display_rich(self) -> str:
        if self.span is not None and self.input_text is not None:
            out = f"error: {self}\n"
            out += f"  {self.input_text}\n"
            padding = " " * (self.span.start + 2)
            underline = "^" * max(self.span.end - self.span.start, 1)
            return out + padding + underline
        return f"error: {self}"
