"""
Load a trips CSV file into the database from the command line.

Usage:
    tripboard-load --file trips.csv           # append the trips in trips.csv
    tripboard-load --file trips.csv --reset   # remove existing trips before importing
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from tripboard.config import configure_logging
from tripboard.database import SessionLocal, init_db
from tripboard.store import insert_trips, reset_trips
from tripboard.trip_parser import ParseReport, TripFileError, decode_upload, ensure_csv_filename, parse_trips_csv

logger = logging.getLogger(__name__)


def read_trips_file(path: Path) -> ParseReport:
    if not path.exists():
        raise FileNotFoundError(f"Trips CSV file not found: {path}")
    ensure_csv_filename(path.name)
    return parse_trips_csv(decode_upload(path.read_bytes()))


def load_trips(report: ParseReport, *, reset: bool = False) -> int:
    """Persist parsed trips, optionally clearing existing trips first."""
    init_db()
    session = SessionLocal()

    try:
        if reset:
            # committed together with the insert below
            reset_trips(session)
        inserted = insert_trips(session, report.trips)
    finally:
        session.close()

    print(
        f"Trips imported: {len(inserted)}, invalid rows: {report.rejected}, "
        f"skipped rows: {len(report.skipped_lines)}"
    )
    for line_number, reason in sorted(report.invalid_lines.items()):
        print(f"  line {line_number}: {reason}")
    return len(inserted)


def parse_cli_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Load a trips CSV file into the trip database."
    )
    parser.add_argument(
        "--file",
        "-f",
        type=Path,
        required=True,
        help="Path to the trips CSV file",
    )
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Delete existing trips and updates before importing.",
    )
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_cli_args(argv)
    configure_logging()
    try:
        report = read_trips_file(args.file)
    except (FileNotFoundError, TripFileError) as exc:
        logger.error("%s", exc)
        return 1
    try:
        load_trips(report, reset=args.reset)
    except SQLAlchemyError:
        logger.exception("Could not store trips from %s", args.file)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
