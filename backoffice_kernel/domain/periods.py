"""
Accounting periods (``backoffice_kernel.domain.periods``).

Monthly period codes of the form ``YYYY-MM`` (e.g. "2024-01") shared by
revenue recognition entries and consolidation runs.  Pure value objects;
no clock access.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date

_PERIOD_CODE = re.compile(r"^(\d{4})-(\d{2})$")


@dataclass(frozen=True, order=True)
class Period:
    """A calendar month.  Ordered chronologically."""

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"Invalid period month: {self.month}")
        if not 1 <= self.year <= 9999:
            raise ValueError(f"Invalid period year: {self.year}")

    @classmethod
    def parse(cls, code: str) -> Period:
        """
        Parse a ``YYYY-MM`` period code.

        Raises:
            ValueError: If the code is not a valid period.
        """
        match = _PERIOD_CODE.match(code) if isinstance(code, str) else None
        if match is None:
            raise ValueError(f"Invalid period format {code!r}, expected YYYY-MM")
        year, month = int(match.group(1)), int(match.group(2))
        if not 1 <= month <= 12:
            raise ValueError(f"Invalid period {code!r}: month must be 01-12")
        return cls(year, month)

    @classmethod
    def of(cls, day: date) -> Period:
        """The period containing ``day``."""
        return cls(day.year, day.month)

    @property
    def code(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    def next(self) -> Period:
        if self.month == 12:
            return Period(self.year + 1, 1)
        return Period(self.year, self.month + 1)

    def __str__(self) -> str:
        return self.code


def validate_period_code(code: str) -> str:
    """Return ``code`` unchanged if it is a valid ``YYYY-MM`` period."""
    return Period.parse(code).code


def months_between(start: date, end: date) -> int:
    """
    Whole-month span from ``start``'s month to ``end``'s month, inclusive.

    2024-01-01 .. 2024-12-31 -> 12; 2024-01-15 .. 2024-02-14 -> 2.
    """
    return (end.year - start.year) * 12 + (end.month - start.month) + 1


def period_range(start: date, end: date) -> list[str]:
    """Ordered period codes covering ``start`` through ``end`` inclusive."""
    count = months_between(start, end)
    if count <= 0:
        return []
    periods: list[str] = []
    current = Period.of(start)
    for _ in range(count):
        periods.append(current.code)
        current = current.next()
    return periods
