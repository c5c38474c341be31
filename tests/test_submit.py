from __future__ import annotations

import pytest
from pydantic import ValidationError

from optometry_reports.errors import DuplicateReport, EmptyReport, ReportLocked, ReportNotFound
from optometry_reports.store.memory import InMemoryReportStore
from optometry_reports.submit import submit_report, update_report

from conftest import make_doc


def _payload(**over: object) -> dict:
    p = {
        "district": " Kozhikode ",
        "institution": "BFHC  Narikkuni",
        "month": "jun",
        "year": 2025,
        "answers": {"q1": "4", "q2": 1},
    }
    p.update(over)
    return p


def test_submit_normalizes_and_locks() -> None:
    store = InMemoryReportStore()
    r = submit_report(store, _payload())
    assert r.district == "Kozhikode"
    assert r.institution == "CHC Narikkuni"
    assert (r.month, r.year) == ("June", "2025")
    assert r.answers["q1"] == 4
    assert r.answers["q84"] == 0
    assert len(r.answers) == 84
    assert r.locked
    assert r.cumulative is None
    assert [row["category"] for row in r.eye_bank] == ["Eye Bank", "Eye Collection Centre"]


def test_duplicate_submission_conflicts() -> None:
    store = InMemoryReportStore()
    submit_report(store, _payload())
    with pytest.raises(DuplicateReport):
        submit_report(store, _payload(institution="chc narikkuni", month="June"))
    assert len(store) == 1


def test_empty_submission_needs_force() -> None:
    store = InMemoryReportStore()
    with pytest.raises(EmptyReport):
        submit_report(store, _payload(answers={}))
    r = submit_report(store, _payload(answers={}), force=True)
    assert sum(r.answers.values()) == 0


def test_table_values_count_as_content() -> None:
    store = InMemoryReportStore()
    r = submit_report(
        store,
        _payload(answers={}, visionCenter=[{"name": "VC Kakkur", "examined": 3}]),
    )
    assert r.vision_center[0]["examined"] == 3


@pytest.mark.parametrize(
    "over",
    [
        {"month": "Smarch"},
        {"year": "25"},
        {"answers": {"q85": 1}},
        {"institution": "   "},
        {"visionCenter": [{"name": f"VC {i}", "examined": 1} for i in range(11)]},
        {"eyeBank": [{"category": "Eye Bank"}]},
    ],
)
def test_invalid_payload_rejected(over: dict) -> None:
    with pytest.raises(ValidationError):
        submit_report(InMemoryReportStore(), _payload(**over))


def test_locked_report_requires_unlock() -> None:
    store = InMemoryReportStore()
    r = submit_report(store, _payload())
    assert r.id is not None

    with pytest.raises(ReportLocked):
        update_report(store, r.id, {"answers": {"q1": 9}})

    updated = update_report(store, r.id, {"answers": {"q1": 9}, "month": "July"}, unlock=True)
    assert updated.answers["q1"] == 9
    assert updated.month == "June"
    assert updated.locked
    assert updated.updated_at is not None


def test_update_unknown_id() -> None:
    with pytest.raises(ReportNotFound):
        update_report(InMemoryReportStore(), "missing", {"answers": {"q1": 1}})


@pytest.mark.parametrize("institution", ["BFHC Narikkuni", "CHC Narikkuni", "chc  NARIKKUNI"])
def test_legacy_alias_document_blocks_submission(institution: str) -> None:
    store = InMemoryReportStore([make_doc("BFHC Narikkuni", " june ", 2025, {"q1": 5}, district="kozhikode")])
    with pytest.raises(DuplicateReport):
        submit_report(store, _payload(institution=institution))
    assert len(store) == 1


def test_same_institution_other_month_is_accepted() -> None:
    store = InMemoryReportStore([make_doc("BFHC Narikkuni", "June", "2025", {"q1": 5})])
    r = submit_report(store, _payload(month="July"))
    assert r.institution == "CHC Narikkuni"
    assert len(store) == 2
