"""Saving monthly reports.

New reports go through an insert-if-absent on (district, institution,
month, year), with the institution matched through every alias, so "does
one already exist" is decided atomically by the store rather than by a
read before the write. Saved reports are locked; editing one requires an
explicit unlock.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Mapping

from optometry_reports.canonical.names import NameCanonicalizer
from optometry_reports.errors import EmptyReport, ReportLocked, ReportNotFound
from optometry_reports.models import Report, ReportSubmission
from optometry_reports.store.base import ReportQuery, ReportStore

log = logging.getLogger(__name__)

CONTENT_FIELDS = ("answers", "eyeBank", "visionCenter")


def submit_report(
    store: ReportStore,
    payload: Mapping[str, Any],
    canonicalizer: NameCanonicalizer | None = None,
    force: bool = False,
    now: datetime | None = None,
) -> Report:
    """Validate and store a new monthly report.

    The institution is stored under its canonical label so new documents
    never add to the alias spread.

    Args:
        store: Target store.
        payload: Form data (district, institution, month, year, answers,
            eyeBank, visionCenter).
        canonicalizer: Institution name resolver.
        force: Store even if every value is zero.
        now: Timestamp for createdAt/updatedAt (defaults to UTC now).

    Raises:
        pydantic.ValidationError: malformed payload.
        EmptyReport: nothing non-zero and `force` is False.
        DuplicateReport: a report for this key already exists.
    """
    canon = canonicalizer if canonicalizer is not None else NameCanonicalizer()
    submission = ReportSubmission.model_validate(dict(payload))
    if not force and not submission.has_content():
        raise EmptyReport(
            f"{submission.institution} {submission.period} has no non-zero values"
        )

    doc = submission.to_document(now or datetime.now(timezone.utc))
    doc["institution"] = canon.display_name(submission.institution)
    bucket = ReportQuery.bucket(
        submission.district, submission.institution, submission.month, submission.year, canon
    )
    report = store.insert_if_absent(doc, bucket)
    log.info("Saved report %s for %s %s", report.id, report.institution, submission.period)
    return report


def update_report(
    store: ReportStore,
    report_id: str,
    payload: Mapping[str, Any],
    unlock: bool = False,
    force: bool = False,
) -> Report:
    """Replace the answers and tables of an existing report.

    Identity fields (district, institution, month, year) are taken from
    the stored report; any in `payload` are ignored. The report is locked
    again after the update.

    Raises:
        ReportNotFound: unknown id.
        ReportLocked: the report is locked and `unlock` is False.
        pydantic.ValidationError: malformed content.
        EmptyReport: nothing non-zero and `force` is False.
    """
    existing = store.find_report_by_id(report_id)
    if existing is None:
        raise ReportNotFound(report_id)
    if existing.locked and not unlock:
        raise ReportLocked(f"report {report_id} is locked")

    merged: dict[str, Any] = {
        "district": existing.district,
        "institution": existing.institution,
        "month": existing.month,
        "year": existing.year,
    }
    merged.update({k: payload[k] for k in CONTENT_FIELDS if k in payload})
    submission = ReportSubmission.model_validate(merged)
    if not force and not submission.has_content():
        raise EmptyReport(f"{existing.institution} {submission.period} has no non-zero values")

    doc = submission.to_document(datetime.now(timezone.utc))
    fields = {k: doc[k] for k in CONTENT_FIELDS}
    fields["locked"] = True
    report = store.update_report(report_id, fields)
    log.info("Updated report %s (%s %s)", report_id, existing.institution, submission.period)
    return report
