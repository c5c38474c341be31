from __future__ import annotations

import io
import logging
from pathlib import Path

from optometry_reports.logging_config import configure_logging


def test_configure_logging_adds_stream_handler() -> None:
    # Ensure configuring logging doesn't raise and attaches a StreamHandler
    configure_logging(None)
    root = logging.getLogger()
    assert any(isinstance(h, logging.StreamHandler) for h in root.handlers)
    assert logging.getLogger("pymongo").level == logging.WARNING


def test_configure_logging_writes_file(tmp_path: Path) -> None:
    log_path = tmp_path / "logs" / "reports.log"
    configure_logging(log_path)
    logging.getLogger("optometry_reports.test").info("hello")
    for h in logging.getLogger().handlers:
        h.flush()
    assert "hello" in log_path.read_text(encoding="utf-8")


def test_configure_logging_uses_given_stream() -> None:
    buf = io.StringIO()
    configure_logging(None, stream=buf)
    logging.getLogger("optometry_reports.test").info("to the buffer")
    assert "to the buffer" in buf.getvalue()
