"""MongoDB-backed Report Store.

Translates `ReportQuery` into a Mongo filter (anchored case-insensitive
regexes for names, so stored documents never need rewriting) and wraps
driver failures into the engine's error taxonomy.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any, Mapping

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ReturnDocument
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError, PyMongoError

from optometry_reports.canonical.names import exact_pattern
from optometry_reports.db import REPORT_KEY_FIELDS
from optometry_reports.errors import DuplicateReport, ReportNotFound, StoreUnavailable
from optometry_reports.models import Report
from optometry_reports.store.base import ReportQuery, parse_reports

log = logging.getLogger(__name__)


def build_filter(query: ReportQuery) -> dict[str, Any]:
    """Return the Mongo filter document for a ReportQuery."""
    flt: dict[str, Any] = {}
    if query.district:
        flt["district"] = exact_pattern(query.district)
    if query.institution_patterns is not None:
        flt["$or"] = [{"institution": p} for p in query.institution_patterns]
    if query.month:
        flt["month"] = re.compile(rf"^\s*{re.escape(query.month)}\s*$", re.IGNORECASE)
    if query.year:
        # legacy documents stored the year as a number
        flt["year"] = {"$in": [query.year, int(query.year)]}
    return flt


def _object_id(report_id: str) -> ObjectId:
    try:
        return ObjectId(report_id)
    except (InvalidId, TypeError):
        raise ReportNotFound(report_id) from None


class MongoReportStore:
    """Report Store over a pymongo collection.

    Args:
        collection: The reports collection (see `db.get_reports_collection`).
    """

    def __init__(self, collection: Collection[dict[str, Any]]) -> None:
        self.collection = collection

    def find_reports(self, query: ReportQuery) -> list[Report]:
        flt = build_filter(query)
        try:
            docs = list(self.collection.find(flt))
        except PyMongoError as e:
            log.warning("Report query failed: %s", e)
            raise StoreUnavailable(str(e)) from e
        log.debug("find_reports %s -> %d docs", flt, len(docs))
        return parse_reports(docs)

    def find_report_by_id(self, report_id: str) -> Report | None:
        try:
            oid = _object_id(report_id)
        except ReportNotFound:
            return None
        try:
            doc = self.collection.find_one({"_id": oid})
        except PyMongoError as e:
            raise StoreUnavailable(str(e)) from e
        return Report.model_validate(doc) if doc else None

    def insert_if_absent(self, document: Mapping[str, Any], bucket: ReportQuery) -> Report:
        # regex and $in conditions are not copied into the upserted document,
        # so every field comes from $setOnInsert
        key = {f: document[f] for f in REPORT_KEY_FIELDS}
        try:
            result = self.collection.update_one(
                build_filter(bucket), {"$setOnInsert": dict(document)}, upsert=True
            )
        except DuplicateKeyError:
            # lost an upsert race against the unique index
            raise DuplicateReport(*(str(key[f]) for f in REPORT_KEY_FIELDS)) from None
        except PyMongoError as e:
            raise StoreUnavailable(str(e)) from e

        if result.upserted_id is None:
            raise DuplicateReport(*(str(key[f]) for f in REPORT_KEY_FIELDS))

        log.info(
            "Inserted report %s for %s %s %s",
            result.upserted_id,
            key["institution"],
            key["month"],
            key["year"],
        )
        return Report.model_validate({**document, "_id": result.upserted_id})

    def update_report(self, report_id: str, fields: Mapping[str, Any]) -> Report:
        oid = _object_id(report_id)
        update = {**fields, "updatedAt": datetime.now(timezone.utc)}
        try:
            doc = self.collection.find_one_and_update(
                {"_id": oid},
                {"$set": update},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            raise StoreUnavailable(str(e)) from e
        if doc is None:
            raise ReportNotFound(report_id)
        return Report.model_validate(doc)
