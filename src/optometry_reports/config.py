"""Configuration helpers and Settings container.

`get_settings` reads the environment (after loading `.env` from the project
root) into a frozen `Settings` object. The institution alias table is built
from settings by `optometry_reports.canonical.aliases.load_alias_table` and
handed to the canonicalizer explicitly; nothing here is a module-level
lookup table.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import os

from dotenv import load_dotenv

# Explicitly load .env from project root
PROJECT_ROOT = Path(__file__).resolve().parents[2]
load_dotenv(PROJECT_ROOT / ".env")

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    """Container for reporting configuration read from the environment.

    Attributes:
        mongo_uri: MongoDB connection URI.
        mongo_db: Target MongoDB database name.
        reports_collection: Collection holding monthly report documents.
        mongo_tls: Whether to connect with TLS using the certifi CA bundle.
        aliases_file: Optional JSON file overriding the built-in alias table.
        coordinator_prefixes: Institution-name prefixes that mark district
            coordinator pseudo-institutions (excluded from district roll-ups).
        aggregation_workers: Threads used for per-institution lookups.
        log_path: Optional log file.
    """
    mongo_uri: str
    mongo_db: str
    reports_collection: str
    mongo_tls: bool
    aliases_file: Path | None
    coordinator_prefixes: tuple[str, ...]
    aggregation_workers: int
    log_path: Path | None


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from None
    if value < 1:
        raise RuntimeError(f"{name} must be >= 1, got {value}")
    return value


def get_settings() -> Settings:
    """Read environment variables and return a frozen `Settings` object.

    Raises:
        RuntimeError: if a numeric setting is malformed.
    """
    mongo_uri = os.getenv("MONGO_URI", "mongodb://127.0.0.1:27017/optometry")
    mongo_db = os.getenv("MONGO_DB", "optometry")
    reports_collection = os.getenv("REPORTS_COLLECTION", "reports")
    mongo_tls = os.getenv("MONGO_TLS", "").strip().lower() in _TRUTHY

    aliases_raw = os.getenv("INSTITUTION_ALIASES_FILE", "").strip()
    aliases_file = Path(aliases_raw) if aliases_raw else None

    prefixes_raw = os.getenv("COORDINATOR_PREFIXES", "doc,dc")
    coordinator_prefixes = tuple(
        p.strip().lower() for p in prefixes_raw.split(",") if p.strip()
    )

    log_raw = os.getenv("LOG_PATH", "").strip()

    return Settings(
        mongo_uri=mongo_uri,
        mongo_db=mongo_db,
        reports_collection=reports_collection,
        mongo_tls=mongo_tls,
        aliases_file=aliases_file,
        coordinator_prefixes=coordinator_prefixes,
        aggregation_workers=_int_env("AGGREGATION_WORKERS", 4),
        log_path=Path(log_raw) if log_raw else None,
    )
