from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable

import pytest

from optometry_reports.errors import StoreUnavailable
from optometry_reports.models import Report
from optometry_reports.store.base import ReportQuery


def make_doc(
    institution: str,
    month: str,
    year: str | int,
    answers: dict[str, Any] | None = None,
    updated: datetime | None = None,
    district: str = "Kozhikode",
    **extra: Any,
) -> dict[str, Any]:
    doc: dict[str, Any] = {
        "district": district,
        "institution": institution,
        "month": month,
        "year": year,
        "answers": answers or {},
    }
    if updated is not None:
        doc["updatedAt"] = updated
    doc.update(extra)
    return doc


def ts(year: int, month: int, day: int) -> datetime:
    return datetime(year, month, day, tzinfo=timezone.utc)


class FailingStore:
    """Store whose queries fail, optionally only for one institution."""

    def __init__(self, inner: Any = None, failing_institution: str | None = None) -> None:
        self.inner = inner
        self.failing_institution = failing_institution
        self.calls = 0

    def find_reports(self, query: ReportQuery) -> list[Report]:
        self.calls += 1
        if self.failing_institution is None:
            raise StoreUnavailable("connection refused")
        pats = query.institution_patterns or ()
        if any(p.match(self.failing_institution) for p in pats):
            raise StoreUnavailable("timeout")
        return self.inner.find_reports(query)

    def find_report_by_id(self, report_id: str) -> Report | None:
        raise StoreUnavailable("connection refused")


@pytest.fixture
def doc() -> Callable[..., dict[str, Any]]:
    return make_doc
