"""
Value objects shared across the domain.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterator, Union

from timeledger.domain.models.base import ValueObject, ValidationError


CENT = Decimal("0.01")

Numeric = Union[Decimal, float, int, str]


def to_decimal(value: Numeric) -> Decimal:
    """Convert a number to Decimal without binary float artefacts."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round_money(value: Numeric) -> Decimal:
    """Round a monetary value to cents, half away from zero."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class DateRange(ValueObject):
    """Inclusive calendar date range."""

    start: date
    end: date

    def validate(self) -> None:
        if self.end < self.start:
            raise ValidationError("End date cannot be before start date", "end_date")

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    def __iter__(self) -> Iterator[date]:
        current = self.start
        while current <= self.end:
            yield current
            current += timedelta(days=1)

    def __contains__(self, day: date) -> bool:
        return self.start <= day <= self.end

    def shift(self, days: int) -> "DateRange":
        return DateRange(self.start + timedelta(days=days), self.end + timedelta(days=days))
