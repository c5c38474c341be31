"""Exception taxonomy for the reporting engine.

Period and identity errors are caller-visible and must block display.
`StoreUnavailable` is recoverable by dropping to a lower aggregation tier.
Duplicate buckets and unknown institutions are logged, never raised.
"""

from __future__ import annotations


class ReportingError(Exception):
    """Base class for all errors raised by optometry_reports."""


class InvalidPeriod(ReportingError, ValueError):
    """Unrecognized month name or malformed year.

    Never corrected to a nearby valid value; the caller must prompt for a
    new selection.
    """

    def __init__(self, month: object, year: object, reason: str) -> None:
        self.month = month
        self.year = year
        self.reason = reason
        super().__init__(f"invalid period {month!r} {year!r}: {reason}")


class StoreUnavailable(ReportingError):
    """The report store query failed or timed out."""


class DuplicateReport(ReportingError):
    """A report already exists for (district, institution, month, year)."""

    def __init__(self, district: str, institution: str, month: str, year: str) -> None:
        self.key = (district, institution, month, year)
        super().__init__(
            f"report already exists for {institution} ({district}) {month} {year}"
        )


class ReportLocked(ReportingError):
    """Edit attempted on a locked report without unlocking it first."""


class EmptyReport(ReportingError):
    """Submission has no non-zero answers or table values."""


class ReportNotFound(ReportingError):
    """No report exists for the given id."""


class InvalidIdentity(ReportingError, ValueError):
    """District or institution name is missing or blank."""
