"""Reporting periods and the fiscal-year window.

The fiscal year runs April to March. January, February and March belong to
the fiscal year that started the previous April. Month names are the full
English names; years are 4-digit strings in every interface.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from optometry_reports.errors import InvalidPeriod

FISCAL_MONTHS: tuple[str, ...] = (
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
    "January",
    "February",
    "March",
)

# index of the first month labelled with fiscal start year + 1
_NEXT_CALENDAR_YEAR_FROM = FISCAL_MONTHS.index("January")

_YEAR_RE = re.compile(r"^\d{4}$")


def normalize_month(month: object) -> str:
    """Return the full month name for a name or abbreviation.

    Accepts any case and any prefix of at least three letters ("jan",
    "Sept", "DECEMBER"), with an optional trailing period.

    Raises:
        InvalidPeriod: for anything that is not a recognizable month.
    """
    text = " ".join(str(month or "").split()).rstrip(".").lower()
    if len(text) >= 3:
        for name in FISCAL_MONTHS:
            if name.lower().startswith(text):
                return name
    raise InvalidPeriod(month, None, "unrecognized month name")


def normalize_year(year: object) -> str:
    """Return a 4-digit year string.

    Raises:
        InvalidPeriod: if the value is not a 4-digit Gregorian year.
    """
    if isinstance(year, bool):
        raise InvalidPeriod(None, year, "year must be a 4-digit number")
    if isinstance(year, float):
        if not year.is_integer():
            raise InvalidPeriod(None, year, "year must be a 4-digit number")
        year = int(year)
    text = str(year).strip()
    if not _YEAR_RE.match(text):
        raise InvalidPeriod(None, year, "year must be a 4-digit number")
    return text


@dataclass(frozen=True)
class Period:
    """A reporting month, e.g. Period("June", "2025").

    Attributes:
        month: Full English month name from FISCAL_MONTHS.
        year: 4-digit year string.
    """
    month: str
    year: str

    @classmethod
    def parse(cls, month: object, year: object) -> "Period":
        """Validate and normalize a (month, year) pair.

        Raises:
            InvalidPeriod: if either part is malformed.
        """
        try:
            m = normalize_month(month)
            y = normalize_year(year)
        except InvalidPeriod as e:
            raise InvalidPeriod(month, year, e.reason) from None
        return cls(month=m, year=y)

    @property
    def fiscal_index(self) -> int:
        return FISCAL_MONTHS.index(self.month)

    @property
    def fiscal_start_year(self) -> int:
        y = int(self.year)
        return y - 1 if self.fiscal_index >= _NEXT_CALENDAR_YEAR_FROM else y

    @property
    def label(self) -> str:
        return f"{self.month} {self.year}"

    def bucket(self) -> tuple[str, str]:
        return (self.month.lower(), self.year)

    def __str__(self) -> str:
        return self.label


def fiscal_start_year(month: object, year: object) -> int:
    """Return the calendar year in which the fiscal year containing (month, year) began."""
    return Period.parse(month, year).fiscal_start_year


def fiscal_window(to_month: object, to_year: object) -> list[Period]:
    """Return the periods from fiscal-year April through (to_month, to_year), inclusive.

    Examples:
        fiscal_window("June", 2025) -> April 2025, May 2025, June 2025
        fiscal_window("March", 2026) -> April 2025 ... March 2026 (12 periods)

    Raises:
        InvalidPeriod: if the month or year is malformed.
    """
    target = Period.parse(to_month, to_year)
    start = target.fiscal_start_year

    window: list[Period] = []
    for i, month in enumerate(FISCAL_MONTHS):
        y = start if i < _NEXT_CALENDAR_YEAR_FROM else start + 1
        window.append(Period(month=month, year=str(y)))
        if i == target.fiscal_index:
            break
    return window
