"""Logging setup shared by the CLI and any embedding application."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TextIO

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# pymongo logs every heartbeat/command at DEBUG; dask logs scheduler chatter
NOISY_LOGGERS = ("pymongo", "dask", "urllib3")


def configure_logging(
    log_path: Path | None = None,
    level: int = logging.INFO,
    library_level: int = logging.WARNING,
    stream: TextIO | None = None,
) -> None:
    """Install a stream (and optional file) handler on the root logger.

    Duplicate-bucket warnings and fallback-tier transitions are emitted at
    WARNING, so `level` should stay at INFO or lower in production to keep
    the data-quality trail.

    Args:
        log_path: Optional path to a file where logs will be written.
        level: Root logging level (defaults to INFO).
        library_level: Level applied to third-party loggers.
        stream: Stream for the console handler (defaults to stdout). The CLI
            passes stderr so its JSON output stays clean.
    """
    handlers: list[logging.Handler] = [logging.StreamHandler(stream if stream is not None else sys.stdout)]
    if log_path is not None:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)
