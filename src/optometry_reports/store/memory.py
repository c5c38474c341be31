"""In-memory Report Store.

Holds documents cached on the client (or loaded from a JSON dump) so the
aggregation algorithm can run without the server. Results computed from it
are tagged `local-fallback`.
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timezone
from itertools import count
from pathlib import Path
from typing import Any, Iterable, Mapping

from optometry_reports.db import REPORT_KEY_FIELDS
from optometry_reports.errors import DuplicateReport, ReportNotFound
from optometry_reports.models import Report
from optometry_reports.store.base import ReportQuery, parse_reports

log = logging.getLogger(__name__)


class InMemoryReportStore:
    """A list-backed store with the same query semantics as the Mongo store.

    Args:
        documents: Initial raw documents. Documents without `_id` get a
            sequential one.
    """

    def __init__(self, documents: Iterable[Mapping[str, Any]] = ()) -> None:
        self._lock = threading.Lock()
        self._ids = count(1)
        self._docs: list[dict[str, Any]] = []
        for d in documents:
            self._append(dict(d))

    @classmethod
    def from_json(cls, path: Path) -> "InMemoryReportStore":
        """Load a JSON array of report documents (e.g. a mongoexport --jsonArray dump)."""
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, list):
            raise ValueError(f"{path}: expected a JSON array of report documents")
        docs = [_unwrap_extended_json(d) for d in data if isinstance(d, dict)]
        log.info("Loaded %d cached reports from %s", len(docs), path)
        return cls(docs)

    def _append(self, doc: dict[str, Any]) -> dict[str, Any]:
        if doc.get("_id") is None:
            doc["_id"] = f"local-{next(self._ids)}"
        self._docs.append(doc)
        return doc

    def __len__(self) -> int:
        return len(self._docs)

    def find_reports(self, query: ReportQuery) -> list[Report]:
        with self._lock:
            hits = [d for d in self._docs if query.matches(d)]
        return parse_reports(hits)

    def find_report_by_id(self, report_id: str) -> Report | None:
        with self._lock:
            for d in self._docs:
                if str(d.get("_id")) == str(report_id):
                    return Report.model_validate(d)
        return None

    def insert_if_absent(self, document: Mapping[str, Any], bucket: ReportQuery) -> Report:
        with self._lock:
            if any(bucket.matches(d) for d in self._docs):
                raise DuplicateReport(*(str(document.get(f)) for f in REPORT_KEY_FIELDS))
            doc = self._append(dict(document))
        return Report.model_validate(doc)

    def update_report(self, report_id: str, fields: Mapping[str, Any]) -> Report:
        with self._lock:
            for d in self._docs:
                if str(d.get("_id")) == str(report_id):
                    d.update(fields)
                    d["updatedAt"] = datetime.now(timezone.utc)
                    return Report.model_validate(d)
        raise ReportNotFound(report_id)


def _unwrap_extended_json(doc: dict[str, Any]) -> dict[str, Any]:
    """Flatten mongoexport's {"$oid": ...} and {"$date": ...} wrappers."""
    out: dict[str, Any] = {}
    for k, v in doc.items():
        if isinstance(v, dict) and len(v) == 1:
            if "$oid" in v:
                v = v["$oid"]
            elif "$date" in v:
                v = v["$date"]
        out[k] = v
    return out
