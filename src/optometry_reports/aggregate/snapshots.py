"""Latest-snapshot selection.

The store does not guarantee one document per (district, institution,
month, year): renamed institutions, legacy imports and submit races all
produce siblings. Aggregation counts exactly one document per bucket, the
most recently updated one; its siblings are dropped, never merged.
"""

from __future__ import annotations

import logging
from typing import Callable, Hashable, Iterable, TypeVar

from optometry_reports.canonical.names import NameCanonicalizer
from optometry_reports.models import Report

log = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)


def select_latest(
    reports: Iterable[Report],
    key: Callable[[Report], K | None],
) -> dict[K, Report]:
    """Reduce `reports` to one Report per bucket.

    The winner has the greatest `Report.recency()` (updatedAt, else
    createdAt, else epoch). Equal timestamps resolve to the last one seen.
    Reports whose key is None are skipped.

    Args:
        reports: Candidate reports, in store order.
        key: Bucket id for a report.

    Returns:
        Mapping of bucket id to the selected Report.
    """
    latest: dict[K, Report] = {}
    for report in reports:
        bucket = key(report)
        if bucket is None:
            continue
        prev = latest.get(bucket)
        if prev is None:
            latest[bucket] = report
            continue

        winner = report if report.recency() >= prev.recency() else prev
        loser = prev if winner is report else report
        log.warning(
            "Ambiguous duplicate for bucket %s: keeping %s (%s), dropping %s (%s)",
            bucket,
            winner.id,
            winner.recency().isoformat(),
            loser.id,
            loser.recency().isoformat(),
        )
        latest[bucket] = winner
    return latest


def period_key(report: Report) -> tuple[str, str] | None:
    """Bucket by normalized (month, year); malformed periods yield None."""
    period = report.period()
    return None if period is None else period.bucket()


def institution_period_key(canon: NameCanonicalizer) -> Callable[[Report], tuple[str, str, str, str] | None]:
    """Return a key function bucketing by (district, canonical institution, month, year)."""

    def _key(report: Report) -> tuple[str, str, str, str] | None:
        period = report.period()
        if period is None:
            return None
        return (
            report.district.lower(),
            canon.canonical_key(report.institution),
            *period.bucket(),
        )

    return _key
