"""District roll-up of the eye-bank and vision-center tables.

Only reports for exactly the requested month are used; unlike the answer
vectors these tables are not accumulated over the fiscal year.
"""

from __future__ import annotations

import logging

from optometry_reports.aggregate.periods import Period
from optometry_reports.aggregate.snapshots import select_latest
from optometry_reports.canonical.aliases import sanitize
from optometry_reports.canonical.names import NameCanonicalizer
from optometry_reports.errors import InvalidIdentity
from optometry_reports.models import (
    EYE_BANK_CATEGORIES,
    EYE_BANK_METRICS,
    DistrictTables,
    EyeBankRow,
    Tier,
    VisionCenterEntry,
)
from optometry_reports.store.base import ReportQuery, ReportStore

log = logging.getLogger(__name__)


def district_tables(
    store: ReportStore,
    district: object,
    month: object,
    year: object,
    canonicalizer: NameCanonicalizer | None = None,
    tier: Tier = Tier.AUTHORITATIVE,
) -> DistrictTables:
    """Sum eye-bank rows and list vision-center rows for one district and month.

    The latest report per institution is used; coordinator pseudo-institutions
    are skipped.

    Raises:
        InvalidPeriod: malformed month or year.
        StoreUnavailable: the store query failed.
    """
    period = Period.parse(month, year)
    district_name = sanitize(district)
    if not district_name:
        raise InvalidIdentity("district is required")
    canon = canonicalizer if canonicalizer is not None else NameCanonicalizer()

    reports = store.find_reports(
        ReportQuery(district=district_name, month=period.month, year=period.year)
    )
    reports = [
        r for r in reports
        if r.period() == period and r.institution and not canon.is_coordinator(r.institution)
    ]
    latest = select_latest(reports, lambda r: canon.canonical_key(r.institution))

    totals = {c: dict.fromkeys(EYE_BANK_METRICS, 0.0) for c in EYE_BANK_CATEGORIES}
    entries: list[VisionCenterEntry] = []
    for report in latest.values():
        for row in report.eye_bank_rows():
            for metric, value in row.metrics().items():
                totals[row.category][metric] += value
        display = canon.display_name(report.institution)
        entries.extend(VisionCenterEntry(institution=display, row=vc) for vc in report.vision_center_rows())

    entries.sort(key=lambda e: (e.institution.casefold(), e.row.name.casefold()))

    log.info(
        "District tables %s %s: %d reports, %d vision-center rows",
        district_name,
        period,
        len(latest),
        len(entries),
    )
    return DistrictTables(
        district=district_name,
        period=period,
        tier=tier if latest else Tier.EMPTY,
        eye_bank=[EyeBankRow.model_construct(category=c, **totals[c]) for c in EYE_BANK_CATEGORIES],
        vision_centers=entries,
    )
