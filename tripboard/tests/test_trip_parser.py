from __future__ import annotations

from datetime import date

import pytest
from pydantic import ValidationError

from tripboard.trip_parser import (
    EmptyUploadError,
    HeaderError,
    TripFileError,
    TripHeader,
    decode_upload,
    ensure_csv_filename,
    parse_trip_row,
    parse_trips_csv,
)

HEADER = "ID_Viaje,FECHA DE ENTREGA,NOMBRE CONDUCTOR,DESTINO,PROYECTO,PLACA,PROPIEDAD,JORNADA"
HEADER_CELLS = HEADER.split(",")


def test_single_row_is_parsed_into_a_trip() -> None:
    report = parse_trips_csv(f"{HEADER}\nT1,2024-01-01,Juan,CityB,ProjX,ABC123,Own,Day\n")

    assert len(report.trips) == 1
    trip = report.trips[0]
    assert trip.system_trip_id == "T1"
    assert trip.driver_name == "Juan"
    assert trip.project == "ProjX"
    assert trip.delivery_date == date(2024, 1, 1)
    assert trip.destination == "CityB"
    assert trip.plate_number == "ABC123"
    assert trip.property_type == "Own"
    assert trip.work_shift == "Day"
    assert trip.external_trip_id is None
    assert trip.origin is None


def test_header_only_file_is_an_empty_upload() -> None:
    with pytest.raises(EmptyUploadError):
        parse_trips_csv(HEADER + "\n")


def test_empty_file_is_an_empty_upload() -> None:
    with pytest.raises(EmptyUploadError):
        parse_trips_csv("")


def test_rows_with_wrong_cell_count_are_skipped() -> None:
    text = "\n".join(
        [
            HEADER,
            "T1,2024-01-01,Juan,CityB,ProjX,ABC123,Own,Day",
            "T2,2024-01-02,Ana,CityC,ProjX,XYZ999,Own",
            "T3,2024-01-03,Luis,CityD,ProjY,JKL555,Rented,Night,extra",
            "",
        ]
    )
    report = parse_trips_csv(text)

    assert [trip.system_trip_id for trip in report.trips] == ["T1"]
    assert report.skipped_lines == [3, 4]
    assert report.rejected == 0


def test_blank_lines_are_ignored_silently() -> None:
    text = f"{HEADER}\n\nT1,2024-01-01,Juan,CityB,ProjX,ABC123,Own,Day\n\n"
    report = parse_trips_csv(text)

    assert len(report.trips) == 1
    assert report.skipped_lines == []


def test_rows_with_empty_required_values_are_rejected() -> None:
    text = "\n".join(
        [
            HEADER,
            "T1,2024-01-01,Juan,CityB,ProjX,ABC123,Own,Day",
            "T2,2024-01-02,   ,CityC,ProjX,XYZ999,Own,Day",
            "T3,not-a-date,Luis,CityD,ProjY,JKL555,Rented,Night",
        ]
    )
    report = parse_trips_csv(text)

    assert [trip.system_trip_id for trip in report.trips] == ["T1"]
    assert set(report.invalid_lines) == {3, 4}
    assert "driver_name" in report.invalid_lines[3]
    assert "delivery_date" in report.invalid_lines[4]


def test_all_rows_invalid_is_an_empty_upload() -> None:
    text = f"{HEADER}\n,2024-01-01,Juan,CityB,ProjX,ABC123,Own,Day\n"
    with pytest.raises(EmptyUploadError):
        parse_trips_csv(text)


def test_values_and_header_names_are_trimmed() -> None:
    header = " ID_Viaje , FECHA DE ENTREGA ,NOMBRE CONDUCTOR,DESTINO,PROYECTO,PLACA,PROPIEDAD,JORNADA"
    report = parse_trips_csv(f"{header}\n  T9 , 15/03/2024 , Marta ,Lima,ProjZ,PLK001,Own,Day")

    trip = report.trips[0]
    assert trip.system_trip_id == "T9"
    assert trip.driver_name == "Marta"
    assert trip.delivery_date == date(2024, 3, 15)


def test_optional_columns_are_read_when_present() -> None:
    header = f"{HEADER},ID_Externo,ORIGEN"
    report = parse_trips_csv(
        f"{header}\nT1,2024-01-01,Juan,CityB,ProjX,ABC123,Own,Day,EXT-7,CityA\n"
        "T2,2024-01-01,Ana,CityB,ProjX,ABC124,Own,Day,,\n"
    )

    first, second = report.trips
    assert first.external_trip_id == "EXT-7"
    assert first.origin == "CityA"
    assert second.external_trip_id is None
    assert second.origin is None


def test_quoted_fields_may_contain_commas() -> None:
    report = parse_trips_csv(f'{HEADER}\nT1,2024-01-01,"Pérez, Juan",CityB,ProjX,ABC123,Own,Day\n')

    assert report.trips[0].driver_name == "Pérez, Juan"


def test_missing_required_column_is_rejected() -> None:
    header = HEADER.replace(",JORNADA", "")
    with pytest.raises(HeaderError, match="JORNADA"):
        parse_trips_csv(f"{header}\nT1,2024-01-01,Juan,CityB,ProjX,ABC123,Own\n")


def test_unknown_column_is_rejected() -> None:
    with pytest.raises(HeaderError, match="COMENTARIO"):
        TripHeader.parse(HEADER_CELLS + ["COMENTARIO"])


def test_duplicated_column_is_rejected() -> None:
    with pytest.raises(HeaderError, match="PLACA"):
        TripHeader.parse(HEADER_CELLS + ["PLACA"])


def test_header_errors_are_file_errors() -> None:
    assert issubclass(HeaderError, TripFileError)
    assert issubclass(EmptyUploadError, TripFileError)


def test_parse_trip_row_is_pure() -> None:
    header = TripHeader.parse(HEADER_CELLS)
    row = ["T1", "2024-01-01", "Juan", "CityB", "ProjX", "ABC123", "Own", "Day"]

    first = parse_trip_row(header, row)
    parse_trip_row(header, ["T2", "2024-05-05", "Ana", "X", "Y", "Z", "Own", "Day"])
    second = parse_trip_row(header, row)

    assert first == second
    assert row[0] == "T1"


def test_parse_trip_row_raises_validation_error_for_blank_field() -> None:
    header = TripHeader.parse(HEADER_CELLS)
    with pytest.raises(ValidationError):
        parse_trip_row(header, ["T1", "2024-01-01", "Juan", "CityB", "", "ABC123", "Own", "Day"])


def test_parsed_trips_have_no_empty_required_field() -> None:
    rows = [
        "T1,2024-01-01,Juan,CityB,ProjX,ABC123,Own,Day",
        "T2,02/01/2024,Ana,CityC,ProjY,XYZ999,Rented,Night",
    ]
    report = parse_trips_csv("\n".join([HEADER, *rows]))

    required = (
        "system_trip_id",
        "driver_name",
        "destination",
        "project",
        "plate_number",
        "property_type",
        "work_shift",
    )
    for trip in report.trips:
        for name in required:
            assert getattr(trip, name)
        assert trip.delivery_date is not None


def test_decode_upload_handles_bom_and_latin1() -> None:
    assert decode_upload("\ufeffID_Viaje".encode("utf-8")) == "ID_Viaje"
    assert decode_upload("Peña".encode("latin-1")) == "Peña"


def test_bom_prefixed_file_is_parsed() -> None:
    content = f"{HEADER}\nT1,2024-01-01,Juan,CityB,ProjX,ABC123,Own,Day\n".encode("utf-8-sig")
    report = parse_trips_csv(decode_upload(content))

    assert report.trips[0].system_trip_id == "T1"


@pytest.mark.parametrize("filename", ["trips.csv", "TRIPS.CSV"])
def test_csv_filenames_are_accepted(filename: str) -> None:
    ensure_csv_filename(filename)


@pytest.mark.parametrize("filename", ["trips.xlsx", "trips.csv.txt", "", None])
def test_other_filenames_are_rejected(filename) -> None:
    with pytest.raises(TripFileError):
        ensure_csv_filename(filename)


def test_oversized_field_is_a_file_error() -> None:
    content = f"{HEADER}\nT1,2024-01-01,{'x' * 200_000},CityB,ProjX,ABC123,Own,Day\n"

    with pytest.raises(TripFileError, match="formato válido"):
        parse_trips_csv(content)
