from __future__ import annotations

import sys
from importlib import import_module
from pathlib import Path

import pytest
from sqlalchemy.exc import SQLAlchemyError

HEADER = "ID_Viaje,FECHA DE ENTREGA,NOMBRE CONDUCTOR,DESTINO,PROYECTO,PLACA,PROPIEDAD,JORNADA"


@pytest.fixture()
def loader(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'cli.db'}")
    for module in ("tripboard.load_trips", "tripboard.database", "tripboard.config"):
        sys.modules.pop(module, None)
    module = import_module("tripboard.load_trips")
    yield module
    import_module("tripboard.database").engine.dispose()


def _count_trips() -> int:
    database = import_module("tripboard.database")
    from tripboard.models import Trip

    session = database.SessionLocal()
    try:
        return session.query(Trip).count()
    finally:
        session.close()


def test_cli_imports_valid_rows(loader, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
    csv_path = tmp_path / "trips.csv"
    csv_path.write_text(
        f"{HEADER}\nT1,2024-01-01,Juan,CityB,ProjX,ABC123,Own,Day\nT2,2024-01-02,,CityB,ProjX,ABC124,Own,Day\n",
        encoding="utf-8",
    )

    assert loader.main(["--file", str(csv_path)]) == 0

    output = capsys.readouterr().out
    assert "Trips imported: 1, invalid rows: 1, skipped rows: 0" in output
    assert "line 3" in output
    assert _count_trips() == 1


def test_cli_reset_replaces_existing_trips(loader, tmp_path: Path) -> None:
    csv_path = tmp_path / "trips.csv"
    csv_path.write_text(f"{HEADER}\nT1,2024-01-01,Juan,CityB,ProjX,ABC123,Own,Day\n", encoding="utf-8")

    loader.main(["--file", str(csv_path)])
    loader.main(["--file", str(csv_path)])
    assert _count_trips() == 2

    loader.main(["--file", str(csv_path), "--reset"])
    assert _count_trips() == 1


def test_cli_fails_on_missing_or_empty_file(loader, tmp_path: Path) -> None:
    assert loader.main(["--file", str(tmp_path / "missing.csv")]) == 1

    empty = tmp_path / "empty.csv"
    empty.write_text(HEADER + "\n", encoding="utf-8")
    assert loader.main(["--file", str(empty)]) == 1


def test_cli_failed_insert_keeps_existing_trips_on_reset(loader, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    csv_path = tmp_path / "trips.csv"
    csv_path.write_text(f"{HEADER}\nT1,2024-01-01,Juan,CityB,ProjX,ABC123,Own,Day\n", encoding="utf-8")
    assert loader.main(["--file", str(csv_path)]) == 0

    def fail(db, trips):
        raise SQLAlchemyError("disk I/O error")

    monkeypatch.setattr(loader, "insert_trips", fail)

    assert loader.main(["--file", str(csv_path), "--reset"]) == 1
    assert _count_trips() == 1
