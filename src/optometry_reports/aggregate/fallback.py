"""Tiered fallback for cumulative results.

Providers are tried in order; each returns a tagged `CumulativeResult` or
None, and the first non-None result wins. The usual chain is:

1. authoritative  - aggregation over the server store
2. local-fallback - the same aggregation over locally cached documents
3. stored-snapshot - the legacy `cumulative` field of the period's document
4. empty          - zero vectors

Period and identity errors are never treated as "try the next tier": they
propagate so the caller can prompt for a new selection.
"""

from __future__ import annotations

import logging
from typing import Callable, Sequence

from optometry_reports.aggregate.cumulative import CumulativeAggregator, empty_result
from optometry_reports.aggregate.periods import Period
from optometry_reports.aggregate.snapshots import select_latest
from optometry_reports.aggregate.vectors import vector_to_list
from optometry_reports.canonical.aliases import sanitize
from optometry_reports.canonical.names import NameCanonicalizer
from optometry_reports.errors import StoreUnavailable
from optometry_reports.models import CumulativeResult, Tier
from optometry_reports.store.base import ReportQuery, ReportStore

log = logging.getLogger(__name__)

Provider = Callable[[str, str, Period], "CumulativeResult | None"]


def aggregator_provider(aggregator: CumulativeAggregator) -> Provider:
    """Provider running the full fiscal-window aggregation.

    Yields None when the store is unavailable or holds no data for the
    window, so the chain moves on.
    """

    def _provide(district: str, institution: str, period: Period) -> CumulativeResult | None:
        try:
            res = aggregator.cumulative_for(district, institution, period.month, period.year)
        except StoreUnavailable as e:
            log.warning("%s store unavailable: %s", aggregator.tier.value, e)
            return None
        return None if res.tier is Tier.EMPTY else res

    return _provide


def stored_snapshot_provider(store: ReportStore, canonicalizer: NameCanonicalizer) -> Provider:
    """Provider reading the legacy `cumulative` field of the exact period's report."""

    def _provide(district: str, institution: str, period: Period) -> CumulativeResult | None:
        query = ReportQuery(
            district=district,
            institution_patterns=tuple(canonicalizer.match_patterns(institution)),
            month=period.month,
            year=period.year,
        )
        try:
            reports = store.find_reports(query)
        except StoreUnavailable as e:
            log.warning("stored-snapshot store unavailable: %s", e)
            return None

        with_snapshot = [r for r in reports if r.cumulative is not None and r.period() == period]
        chosen = select_latest(with_snapshot, lambda r: period.bucket()).get(period.bucket())
        if chosen is None:
            return None

        vec = chosen.cumulative_vector()
        return CumulativeResult(
            district=district,
            institution=canonicalizer.display_name(institution),
            period=period,
            tier=Tier.STORED_SNAPSHOT,
            vector=vector_to_list(vec),
            month_vector=vector_to_list(chosen.answer_vector()),
            matched_documents=1,
        )

    return _provide


class FallbackChain:
    """Ordered providers; the first tagged result wins, else the empty tier.

    Args:
        providers: Providers in priority order.
        canonicalizer: Used for the display name of an empty result.
    """

    def __init__(self, providers: Sequence[Provider], canonicalizer: NameCanonicalizer | None = None) -> None:
        self.providers = list(providers)
        self.canon = canonicalizer if canonicalizer is not None else NameCanonicalizer()

    @classmethod
    def standard(
        cls,
        server: ReportStore,
        local: ReportStore | None = None,
        canonicalizer: NameCanonicalizer | None = None,
        workers: int = 4,
    ) -> "FallbackChain":
        """Build the authoritative -> local-fallback -> stored-snapshot chain."""
        canon = canonicalizer if canonicalizer is not None else NameCanonicalizer()
        providers: list[Provider] = [
            aggregator_provider(CumulativeAggregator(server, canon, Tier.AUTHORITATIVE, workers))
        ]
        if local is not None:
            providers.append(aggregator_provider(CumulativeAggregator(local, canon, Tier.LOCAL_FALLBACK, workers)))
            providers.append(stored_snapshot_provider(local, canon))
        else:
            providers.append(stored_snapshot_provider(server, canon))
        return cls(providers, canon)

    def resolve(self, district: object, institution: object, month: object, year: object) -> CumulativeResult:
        """Return the first available result for exactly (month, year).

        Raises:
            InvalidPeriod: malformed month or year.
        """
        period = Period.parse(month, year)
        district_name = sanitize(district)
        inst_name = sanitize(institution)

        for i, provider in enumerate(self.providers):
            res = provider(district_name, inst_name, period)
            if res is None:
                continue
            if not res.matches(period):
                log.error("Provider returned %s for requested %s; discarded", res.period, period)
                continue
            if i > 0:
                log.warning(
                    "Cumulative for %s %s served from %s tier",
                    res.institution,
                    period,
                    res.tier.value,
                )
            return res

        log.warning("No data for %s %s in any tier; returning empty", inst_name, period)
        return empty_result(district_name, self.canon.display_name(inst_name), period)
