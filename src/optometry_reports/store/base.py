"""Report Store contract consumed by the aggregation engine."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Mapping, Protocol, Sequence

from optometry_reports.canonical.aliases import normalize
from optometry_reports.canonical.names import NameCanonicalizer, exact_pattern
from optometry_reports.models import Report


@dataclass(frozen=True)
class ReportQuery:
    """Filters for `ReportStore.find_reports`; every field is optional.

    Attributes:
        district: Matched case-insensitively, tolerant of whitespace.
        institution_patterns: OR of exact-match regexes on the institution.
        month: Full month name, matched case-insensitively.
        year: 4-digit year string.
    """
    district: str | None = None
    institution_patterns: tuple[re.Pattern[str], ...] | None = None
    month: str | None = None
    year: str | None = None

    @classmethod
    def bucket(
        cls,
        district: str,
        institution: str,
        month: str,
        year: str,
        canonicalizer: NameCanonicalizer,
    ) -> "ReportQuery":
        """Query matching every stored spelling of one (district, institution, month, year) report."""
        return cls(
            district=district,
            institution_patterns=tuple(canonicalizer.match_patterns(institution)),
            month=month,
            year=year,
        )

    def matches(self, doc: Mapping[str, Any]) -> bool:
        """Evaluate the filters against a raw stored document."""
        if self.district and not exact_pattern(self.district).match(str(doc.get("district") or "")):
            return False
        if self.institution_patterns is not None:
            inst = str(doc.get("institution") or "")
            if not any(p.match(inst) for p in self.institution_patterns):
                return False
        if self.month and normalize(doc.get("month")) != self.month.lower():
            return False
        if self.year and _year_text(doc.get("year")) != self.year:
            return False
        return True


def _year_text(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value if value is not None else "").strip()


class ReportStore(Protocol):
    """Minimal store interface; implementations raise StoreUnavailable on I/O failure."""

    def find_reports(self, query: ReportQuery) -> list[Report]:
        ...

    def find_report_by_id(self, report_id: str) -> Report | None:
        ...

    def insert_if_absent(self, document: Mapping[str, Any], bucket: ReportQuery) -> Report:
        """Insert `document` unless a stored report already matches `bucket`.

        `bucket` names the report's (district, institution aliases, month,
        year) so a legacy spelling of the same institution counts as taken.

        Raises:
            DuplicateReport: if the bucket is already taken.
        """
        ...

    def update_report(self, report_id: str, fields: Mapping[str, Any]) -> Report:
        """Set `fields` on an existing report.

        Raises:
            ReportNotFound: if no report has this id.
        """
        ...


def parse_reports(docs: Sequence[Mapping[str, Any]]) -> list[Report]:
    return [Report.model_validate(dict(d)) for d in docs]
