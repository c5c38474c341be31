from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError, ServerSelectionTimeoutError

from optometry_reports.canonical.names import NameCanonicalizer
from optometry_reports.errors import DuplicateReport, StoreUnavailable
from optometry_reports.store.base import ReportQuery
from optometry_reports.store.mongo import MongoReportStore, build_filter


class FakeCollection:
    name = "reports"

    def __init__(self, docs: list[dict[str, Any]] | None = None, fail: Exception | None = None, upserted_id: Any = None) -> None:
        self.docs = docs or []
        self.fail = fail
        self.upserted_id = upserted_id
        self.filters: list[dict[str, Any]] = []
        self.upserts: list[tuple[dict[str, Any], dict[str, Any]]] = []

    def find(self, flt: dict[str, Any]) -> Any:
        if self.fail is not None:
            raise self.fail
        self.filters.append(flt)
        return iter(self.docs)

    def find_one(self, flt: dict[str, Any]) -> Any:
        if self.fail is not None:
            raise self.fail
        return next((d for d in self.docs if d["_id"] == flt["_id"]), None)

    def update_one(self, flt: dict[str, Any], update: dict[str, Any], upsert: bool = False) -> Any:
        if self.fail is not None:
            raise self.fail
        self.upserts.append((flt, update))
        return SimpleNamespace(upserted_id=self.upserted_id)


def test_build_filter_translates_query() -> None:
    pats = tuple(NameCanonicalizer().match_patterns("CHC Narikkuni"))
    flt = build_filter(ReportQuery(district="Kozhikode", institution_patterns=pats, month="June", year="2025"))
    assert flt["district"].match("  kozhikode ")
    assert len(flt["$or"]) == 2
    assert all(set(clause) == {"institution"} for clause in flt["$or"])
    assert flt["month"].match("june")
    assert flt["year"] == {"$in": ["2025", 2025]}


def test_build_filter_omits_unset_fields() -> None:
    assert set(build_filter(ReportQuery(district="Kozhikode"))) == {"district"}


def test_find_reports_parses_documents() -> None:
    oid = ObjectId()
    coll = FakeCollection([{"_id": oid, "district": "Kozhikode", "institution": "CHC X", "month": "June", "year": 2025}])
    reports = MongoReportStore(coll).find_reports(ReportQuery(district="Kozhikode"))
    assert reports[0].id == str(oid)
    assert reports[0].year == "2025"


def test_driver_errors_become_store_unavailable() -> None:
    store = MongoReportStore(FakeCollection(fail=ServerSelectionTimeoutError("no servers")))
    with pytest.raises(StoreUnavailable):
        store.find_reports(ReportQuery(district="Kozhikode"))
    with pytest.raises(StoreUnavailable):
        store.find_report_by_id(str(ObjectId()))


def test_find_by_malformed_id_is_none() -> None:
    assert MongoReportStore(FakeCollection()).find_report_by_id("not-an-id") is None


def test_insert_if_absent() -> None:
    doc = {"district": "Kozhikode", "institution": "CHC X", "month": "June", "year": "2025", "answers": {}}
    bucket = ReportQuery.bucket("Kozhikode", "CHC X", "June", "2025", NameCanonicalizer())
    oid = ObjectId()
    r = MongoReportStore(FakeCollection(upserted_id=oid)).insert_if_absent(doc, bucket)
    assert r.id == str(oid)

    with pytest.raises(DuplicateReport):
        MongoReportStore(FakeCollection(upserted_id=None)).insert_if_absent(doc, bucket)
    with pytest.raises(DuplicateReport):
        MongoReportStore(FakeCollection(fail=DuplicateKeyError("E11000"))).insert_if_absent(doc, bucket)


def test_insert_filter_covers_aliases_and_numeric_year() -> None:
    doc = {"district": "Kozhikode", "institution": "CHC Narikkuni", "month": "June", "year": "2025", "answers": {}}
    bucket = ReportQuery.bucket("Kozhikode", "CHC Narikkuni", "June", "2025", NameCanonicalizer())
    coll = FakeCollection(upserted_id=ObjectId())
    MongoReportStore(coll).insert_if_absent(doc, bucket)

    flt, update = coll.upserts[0]
    assert any(clause["institution"].match("BFHC  narikkuni") for clause in flt["$or"])
    assert flt["district"].match(" kozhikode")
    assert flt["month"].match("JUNE")
    assert flt["year"] == {"$in": ["2025", 2025]}
    assert update == {"$setOnInsert": doc}
