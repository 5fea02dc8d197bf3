"""Parse trip CSV uploads into validated ``TripCreate`` records.

The header is checked once against the fixed column set below; every data row
whose length matches the header is then read by position. Rows with a
different number of cells never reach the row parser.
"""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Sequence, Tuple

from pydantic import ValidationError

from tripboard import messages
from tripboard.schemas import TripCreate

logger = logging.getLogger(__name__)

# CSV column -> TripCreate field.
REQUIRED_COLUMNS: Mapping[str, str] = {
    "ID_Viaje": "system_trip_id",
    "FECHA DE ENTREGA": "delivery_date",
    "NOMBRE CONDUCTOR": "driver_name",
    "DESTINO": "destination",
    "PROYECTO": "project",
    "PLACA": "plate_number",
    "PROPIEDAD": "property_type",
    "JORNADA": "work_shift",
}

OPTIONAL_COLUMNS: Mapping[str, str] = {
    "ID_Externo": "external_trip_id",
    "ORIGEN": "origin",
}

KNOWN_COLUMNS: Mapping[str, str] = {**REQUIRED_COLUMNS, **OPTIONAL_COLUMNS}


class TripFileError(ValueError):
    """The uploaded file cannot be turned into trips at all."""


class HeaderError(TripFileError):
    pass


class EmptyUploadError(TripFileError):
    pass


@dataclass(frozen=True)
class TripHeader:
    columns: Tuple[str, ...]
    positions: Mapping[str, int]  # TripCreate field -> column index

    @classmethod
    def parse(cls, raw: Sequence[str]) -> "TripHeader":
        columns = tuple(name.strip().lstrip("\ufeff") for name in raw)

        missing = [name for name in REQUIRED_COLUMNS if name not in columns]
        if missing:
            raise HeaderError(f"Faltan columnas requeridas: {', '.join(missing)}")

        unknown = [name for name in columns if name not in KNOWN_COLUMNS]
        if unknown:
            raise HeaderError(f"Columnas desconocidas: {', '.join(unknown)}")

        duplicated = sorted({name for name in columns if columns.count(name) > 1})
        if duplicated:
            raise HeaderError(f"Columnas duplicadas: {', '.join(duplicated)}")

        positions = {KNOWN_COLUMNS[name]: index for index, name in enumerate(columns)}
        return cls(columns=columns, positions=positions)

    def __len__(self) -> int:
        return len(self.columns)


@dataclass
class ParseReport:
    trips: List[TripCreate] = field(default_factory=list)
    skipped_lines: List[int] = field(default_factory=list)
    invalid_lines: Dict[int, str] = field(default_factory=dict)

    @property
    def rejected(self) -> int:
        return len(self.invalid_lines)


def parse_trip_row(header: TripHeader, row: Sequence[str]) -> TripCreate:
    """Build one trip from a data row of the same length as *header*.

    Raises ``pydantic.ValidationError`` when a required value is empty or the
    delivery date cannot be read.
    """
    values = {name: row[index].strip() for name, index in header.positions.items()}
    return TripCreate(**values)


def _describe(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()))
        parts.append(f"{location}: {error.get('msg')}")
    return "; ".join(parts)


def read_rows(text: str) -> List[List[str]]:
    return list(csv.reader(io.StringIO(text.lstrip("\ufeff"))))


def parse_trips_csv(text: str) -> ParseReport:
    """Parse a whole CSV document; fail if it yields no valid trip."""
    try:
        rows = read_rows(text)
    except csv.Error as exc:
        raise TripFileError(messages.MALFORMED_FILE) from exc
    if not rows:
        raise EmptyUploadError(messages.EMPTY_FILE)

    header = TripHeader.parse(rows[0])
    report = ParseReport()

    for line_number, row in enumerate(rows[1:], start=2):
        if len(row) != len(header):
            if any(cell.strip() for cell in row):
                logger.debug("Line %d has %d cells, expected %d", line_number, len(row), len(header))
                report.skipped_lines.append(line_number)
            continue
        try:
            report.trips.append(parse_trip_row(header, row))
        except ValidationError as exc:
            reason = _describe(exc)
            report.invalid_lines[line_number] = reason
            logger.warning("Line %d rejected: %s", line_number, reason)

    if not report.trips:
        raise EmptyUploadError(messages.NO_VALID_TRIPS)

    logger.info(
        "Parsed %d trips (%d invalid, %d skipped)",
        len(report.trips),
        report.rejected,
        len(report.skipped_lines),
    )
    return report


def decode_upload(content: bytes) -> str:
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError:
        return content.decode("latin-1")


def ensure_csv_filename(filename: str | None) -> None:
    if not filename or not filename.lower().endswith(".csv"):
        raise TripFileError(messages.NOT_CSV)


__all__ = [
    "EmptyUploadError",
    "HeaderError",
    "OPTIONAL_COLUMNS",
    "ParseReport",
    "REQUIRED_COLUMNS",
    "TripFileError",
    "TripHeader",
    "decode_upload",
    "ensure_csv_filename",
    "parse_trip_row",
    "parse_trips_csv",
    "read_rows",
]
