from __future__ import annotations

from optometry_reports.aggregate.periods import Period
from optometry_reports.aggregate.tables import district_tables
from optometry_reports.models import Tier
from optometry_reports.store.memory import InMemoryReportStore

from conftest import make_doc, ts

DOCS = [
    make_doc(
        "CHC Mukkam",
        "May",
        "2025",
        eyeBank=[{"collected": 2, "keratoplasty": 1}, {"eyes_collected": "3"}],
        visionCenter=[
            {"name": "VC Kodiyathur", "examined": 12, "cataract": 1},
            {"vc_2_name": "VC Anayamkunnu", "vc_2_examined": "8", "vc_2_spectacles_prescribed": 2},
            {"name": "", "examined": 0},
        ],
    ),
    make_doc(
        "BFHC Narikkuni",
        "May",
        "2025",
        updated=ts(2025, 6, 1),
        eyeBank=[{"collected": 5, "pledges": 4}],
        visionCenter=[{"name": "vc kakkur", "patientsExamined": 6}],
    ),
    make_doc(
        "CHC Narikkuni",
        "May",
        "2025",
        updated=ts(2025, 5, 20),
        eyeBank=[{"collected": 100}],
    ),
    make_doc("CHC Mukkam", "June", "2025", eyeBank=[{"collected": 1000}]),
    make_doc("DOC Kozhikode", "May", "2025", eyeBank=[{"collected": 7000}]),
]


def test_eye_bank_totals_use_exact_month_only() -> None:
    t = district_tables(InMemoryReportStore(DOCS), "Kozhikode", "may", 2025)
    assert t.matches(Period("May", "2025"))
    assert t.tier is Tier.AUTHORITATIVE
    bank, centre = t.eye_bank
    assert bank.category == "Eye Bank"
    assert bank.collected == 7
    assert bank.keratoplasty == 1
    assert bank.pledges == 4
    assert centre.category == "Eye Collection Centre"
    assert centre.collected == 3


def test_vision_center_rows_sorted_and_mapped() -> None:
    t = district_tables(InMemoryReportStore(DOCS), "Kozhikode", "May", "2025")
    got = [(e.institution, e.row.name, e.row.examined) for e in t.vision_centers]
    assert got == [
        ("CHC Mukkam", "VC Anayamkunnu", 8),
        ("CHC Mukkam", "VC Kodiyathur", 12),
        ("CHC Narikkuni", "vc kakkur", 6),
    ]
    assert t.vision_centers[0].row.spectacles_prescribed == 2


def test_no_reports_is_empty() -> None:
    t = district_tables(InMemoryReportStore(DOCS), "Kozhikode", "August", "2025")
    assert t.tier is Tier.EMPTY
    assert t.vision_centers == []
    assert all(v == 0 for row in t.eye_bank for v in row.metrics().values())
