"""Command-line interface for the reporting engine.

Provides subcommands: `cumulative`, `district`, `tables`, `submit` and
`indexes`. Each command is implemented as a `cmd_*` function that accepts
an argparse namespace; results are printed to stdout as JSON.
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from optometry_reports.aggregate.cumulative import CumulativeAggregator
from optometry_reports.aggregate.fallback import FallbackChain
from optometry_reports.aggregate.tables import district_tables
from optometry_reports.canonical.aliases import load_alias_table
from optometry_reports.canonical.names import NameCanonicalizer
from optometry_reports.config import Settings, get_settings
from optometry_reports.db import ensure_report_indexes, get_reports_collection
from optometry_reports.errors import (
    DuplicateReport,
    EmptyReport,
    InvalidIdentity,
    InvalidPeriod,
    StoreUnavailable,
)
from optometry_reports.logging_config import configure_logging
from optometry_reports.store.memory import InMemoryReportStore
from optometry_reports.store.mongo import MongoReportStore
from optometry_reports.submit import submit_report

log = logging.getLogger(__name__)

EXIT_INVALID = 2
EXIT_STORE = 3
EXIT_CONFLICT = 4


# --------------------------------------------------
# Helpers
# --------------------------------------------------
def _canonicalizer(s: Settings) -> NameCanonicalizer:
    return NameCanonicalizer(load_alias_table(s.aliases_file), s.coordinator_prefixes)


def _server_store(s: Settings) -> MongoReportStore:
    return MongoReportStore(get_reports_collection(s))


def _emit(text: str) -> None:
    sys.stdout.write(text + "\n")


# --------------------------------------------------
# Commands
# --------------------------------------------------
def cmd_cumulative(args: argparse.Namespace) -> None:
    """Print the fiscal-year cumulative vector for one institution.

    With `--local`, a JSON dump of cached reports backs the local-fallback
    and stored-snapshot tiers.
    """
    s = get_settings()
    canon = _canonicalizer(s)
    local = InMemoryReportStore.from_json(args.local) if args.local else None
    chain = FallbackChain.standard(_server_store(s), local, canon, s.aggregation_workers)

    res = chain.resolve(args.district, args.institution, args.month, args.year)
    _emit(res.model_dump_json(indent=2))


def cmd_district(args: argparse.Namespace) -> None:
    """Print (or dump to CSV) the district matrix for a month."""
    s = get_settings()
    agg = CumulativeAggregator(_server_store(s), _canonicalizer(s), workers=s.aggregation_workers)
    matrix = agg.district_matrix(args.district, args.month, args.year)

    if args.csv:
        frame = matrix.to_frame(args.kind)
        args.csv.parent.mkdir(parents=True, exist_ok=True)
        frame.to_csv(args.csv)
        log.info("Wrote %s matrix (%d columns) to %s", args.kind, frame.shape[1], args.csv)
    else:
        _emit(matrix.model_dump_json(indent=2))


def cmd_tables(args: argparse.Namespace) -> None:
    """Print the district eye-bank totals and vision-center rows for a month."""
    s = get_settings()
    tables = district_tables(
        _server_store(s), args.district, args.month, args.year, canonicalizer=_canonicalizer(s)
    )
    _emit(tables.model_dump_json(indent=2))


def cmd_submit(args: argparse.Namespace) -> None:
    """Submit a report from a JSON file."""
    s = get_settings()
    payload = json.loads(args.file.read_text(encoding="utf-8"))
    report = submit_report(_server_store(s), payload, _canonicalizer(s), force=args.force)
    _emit(json.dumps({"ok": True, "id": report.id}))


def cmd_indexes(_: argparse.Namespace) -> None:
    """Create the unique report index on the configured collection."""
    s = get_settings()
    name = ensure_report_indexes(get_reports_collection(s))
    _emit(json.dumps({"ok": True, "index": name}))


# --------------------------------------------------
# CLI
# --------------------------------------------------
def _add_period(p: argparse.ArgumentParser) -> None:
    p.add_argument("--district", required=True)
    p.add_argument("--month", required=True)
    p.add_argument("--year", required=True)


def build_parser() -> argparse.ArgumentParser:
    """Build and return the top-level argument parser for the CLI."""
    p = argparse.ArgumentParser(prog="optometry-reports")
    p.add_argument("-v", "--verbose", action="store_true")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_cum = sub.add_parser("cumulative")
    _add_period(p_cum)
    p_cum.add_argument("--institution", required=True)
    p_cum.add_argument("--local", type=Path, default=None)

    p_dist = sub.add_parser("district")
    _add_period(p_dist)
    p_dist.add_argument("--csv", type=Path, default=None)
    p_dist.add_argument("--kind", choices=["month", "cumulative"], default="cumulative")

    p_tables = sub.add_parser("tables")
    _add_period(p_tables)

    p_submit = sub.add_parser("submit")
    p_submit.add_argument("file", type=Path)
    p_submit.add_argument("--force", action="store_true")

    sub.add_parser("indexes")

    return p


COMMANDS = {
    "cumulative": cmd_cumulative,
    "district": cmd_district,
    "tables": cmd_tables,
    "submit": cmd_submit,
    "indexes": cmd_indexes,
}


def main(argv: list[str] | None = None) -> None:
    """CLI entry point: parse args, configure logging and dispatch commands."""
    args = build_parser().parse_args(argv)
    s = get_settings()
    configure_logging(s.log_path, logging.DEBUG if args.verbose else logging.INFO, stream=sys.stderr)

    try:
        COMMANDS[args.cmd](args)
    except (InvalidPeriod, InvalidIdentity, EmptyReport, ValidationError) as e:
        log.error("%s", e)
        raise SystemExit(EXIT_INVALID) from None
    except StoreUnavailable as e:
        log.error("Report store unavailable: %s", e)
        raise SystemExit(EXIT_STORE) from None
    except DuplicateReport as e:
        log.error("%s", e)
        raise SystemExit(EXIT_CONFLICT) from None


if __name__ == "__main__":
    main()
