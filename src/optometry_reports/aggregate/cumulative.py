"""Fiscal-year cumulative aggregation.

`CumulativeAggregator.cumulative_for` sums the 84-slot answer vectors of the
latest report per month over the fiscal window (April through the selected
month). `district_matrix` does the same for every institution of a district
and adds a district-total row.

Expectations:
- Input: a ReportStore; names and periods exactly as the user selected them
- Outputs: pydantic results tagged with the period they were computed for
  and the tier of the data behind them
"""
from __future__ import annotations

import logging
from typing import Any, cast

from dask import compute, delayed  # type: ignore[attr-defined]

from optometry_reports.aggregate.periods import Period, fiscal_window
from optometry_reports.aggregate.snapshots import period_key, select_latest
from optometry_reports.aggregate.vectors import (
    ANSWER_SLOTS,
    sequence_to_vector,
    sum_vectors,
    vector_to_list,
    zero_vector,
)
from optometry_reports.canonical.aliases import sanitize
from optometry_reports.canonical.names import NameCanonicalizer
from optometry_reports.errors import InvalidIdentity, StoreUnavailable
from optometry_reports.models import (
    CumulativeResult,
    DistrictMatrix,
    DistrictTotal,
    InstitutionRow,
    Tier,
)
from optometry_reports.store.base import ReportQuery, ReportStore

log = logging.getLogger(__name__)


def _require(value: object, what: str) -> str:
    text = sanitize(value)
    if not text:
        raise InvalidIdentity(f"{what} is required")
    return text


def empty_result(district: str, institution: str, period: Period) -> CumulativeResult:
    """Zero vectors tagged `empty` for exactly `period`."""
    zeros = [0.0] * ANSWER_SLOTS
    return CumulativeResult(
        district=district,
        institution=institution,
        period=period,
        tier=Tier.EMPTY,
        vector=zeros,
        month_vector=list(zeros),
    )


class CumulativeAggregator:
    """Stateless fiscal-year aggregation over a Report Store.

    Args:
        store: Where report documents are read from.
        canonicalizer: Institution name resolver (default alias table if omitted).
        tier: Tier to tag non-empty results with; `authoritative` for the
            server store, `local-fallback` for a client-side cache.
        workers: Threads used for concurrent per-institution lookups.
    """

    def __init__(
        self,
        store: ReportStore,
        canonicalizer: NameCanonicalizer | None = None,
        tier: Tier = Tier.AUTHORITATIVE,
        workers: int = 4,
    ) -> None:
        self.store = store
        self.canon = canonicalizer if canonicalizer is not None else NameCanonicalizer()
        self.tier = tier
        self.workers = max(1, workers)

    # --------------------------------------------------
    # Single institution
    # --------------------------------------------------
    def cumulative_for(self, district: object, institution: object, month: object, year: object) -> CumulativeResult:
        """Return the fiscal-year cumulative vector for one institution.

        The store is queried broadly (district plus every alias of the
        institution, all periods); the latest report per month inside the
        window is summed. Reports outside the window never contribute.

        Raises:
            InvalidPeriod: malformed month or year.
            InvalidIdentity: blank district or institution.
            StoreUnavailable: the store query failed (no retry here).
        """
        period = Period.parse(month, year)
        district_name = _require(district, "district")
        inst_name = _require(institution, "institution")
        display = self.canon.display_name(inst_name)
        window = fiscal_window(period.month, period.year)

        query = ReportQuery(
            district=district_name,
            institution_patterns=tuple(self.canon.match_patterns(inst_name)),
        )
        reports = self.store.find_reports(query)
        if not reports:
            log.info(
                "Unknown institution %r in %s: no stored reports, returning empty",
                display,
                district_name,
            )
            return empty_result(district_name, display, period)

        latest = select_latest(reports, period_key)
        selected = [latest[p.bucket()] for p in window if p.bucket() in latest]
        if not selected:
            return empty_result(district_name, display, period)

        total = sum_vectors(r.answer_vector() for r in selected)
        current = latest.get(period.bucket())
        month_vec = current.answer_vector() if current is not None else zero_vector()

        return CumulativeResult(
            district=district_name,
            institution=display,
            period=period,
            tier=self.tier,
            vector=vector_to_list(total),
            month_vector=vector_to_list(month_vec),
            matched_documents=len(selected),
        )

    # --------------------------------------------------
    # District
    # --------------------------------------------------
    def district_institutions(self, district: object) -> list[str]:
        """Return display names of the district's institutions, sorted, coordinators excluded.

        Raises:
            StoreUnavailable: the discovery query failed.
        """
        district_name = _require(district, "district")
        reports = self.store.find_reports(ReportQuery(district=district_name))

        variants: dict[str, set[str]] = {}
        for r in reports:
            if not r.institution or self.canon.is_coordinator(r.institution):
                continue
            key = self.canon.canonical_key(r.institution)
            variants.setdefault(key, set()).add(self.canon.display_name(r.institution))

        # several spellings of an unaliased name share a key; min() keeps the choice stable
        names = [min(v) for v in variants.values()]
        return sorted(names, key=lambda n: (n.casefold(), n))

    def _institution_row(self, district: str, institution: str, period: Period) -> InstitutionRow:
        try:
            res = self.cumulative_for(district, institution, period.month, period.year)
        except StoreUnavailable as e:
            log.warning("Lookup for %s failed, zero row substituted: %s", institution, e)
            res = empty_result(district, institution, period)
        return InstitutionRow(
            institution=institution,
            month_vector=res.month_vector,
            cumulative_vector=res.vector,
            tier=res.tier,
        )

    def district_matrix(self, district: object, month: object, year: object) -> DistrictMatrix:
        """Return per-institution month/cumulative vectors and the district total.

        One discovery query lists the institutions; each institution is then
        looked up independently on a thread pool. A failed lookup degrades
        that row to zeros tagged `empty` instead of failing the request.

        Raises:
            InvalidPeriod: malformed month or year.
            StoreUnavailable: the discovery query failed.
        """
        period = Period.parse(month, year)
        district_name = _require(district, "district")
        names = self.district_institutions(district_name)

        tasks = [delayed(self._institution_row)(district_name, name, period) for name in names]
        rows: list[InstitutionRow] = []
        if tasks:
            results = cast(Any, compute)(*tasks, scheduler="threads", num_workers=self.workers)
            rows = list(results)

        month_total = sum_vectors(sequence_to_vector(r.month_vector) for r in rows)
        cum_total = sum_vectors(sequence_to_vector(r.cumulative_vector) for r in rows)

        log.info(
            "District matrix %s %s: %d institutions",
            district_name,
            period,
            len(rows),
        )
        return DistrictMatrix(
            district=district_name,
            period=period,
            per_institution=rows,
            district_total=DistrictTotal(
                month_vector=vector_to_list(month_total),
                cumulative_vector=vector_to_list(cum_total),
            ),
        )
