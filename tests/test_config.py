from __future__ import annotations

from pathlib import Path

import pytest

from optometry_reports.config import get_settings


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in ("MONGO_URI", "MONGO_DB", "REPORTS_COLLECTION", "MONGO_TLS", "INSTITUTION_ALIASES_FILE",
                "COORDINATOR_PREFIXES", "AGGREGATION_WORKERS", "LOG_PATH"):
        monkeypatch.delenv(var, raising=False)
    s = get_settings()
    assert s.mongo_db == "optometry"
    assert s.reports_collection == "reports"
    assert s.mongo_tls is False
    assert s.aliases_file is None
    assert s.coordinator_prefixes == ("doc", "dc")
    assert s.aggregation_workers == 4


def test_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MONGO_TLS", "yes")
    monkeypatch.setenv("COORDINATOR_PREFIXES", " DOC, dmo ,")
    monkeypatch.setenv("AGGREGATION_WORKERS", "8")
    monkeypatch.setenv("INSTITUTION_ALIASES_FILE", "conf/aliases.json")
    s = get_settings()
    assert s.mongo_tls is True
    assert s.coordinator_prefixes == ("doc", "dmo")
    assert s.aggregation_workers == 8
    assert s.aliases_file == Path("conf/aliases.json")


@pytest.mark.parametrize("value", ["many", "0"])
def test_bad_worker_count(monkeypatch: pytest.MonkeyPatch, value: str) -> None:
    monkeypatch.setenv("AGGREGATION_WORKERS", value)
    with pytest.raises(RuntimeError):
        get_settings()
