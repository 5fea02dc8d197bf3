"""Synchronous trip queries shared by the API and the gateway."""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy.orm import Session

from tripboard.models import Trip, TripUpdate
from tripboard.schemas import TripCreate, TripUpdateCreate


def list_trips(db: Session) -> List[Trip]:
    """All trips, newest delivery date first."""
    return (
        db.query(Trip)
        .order_by(Trip.delivery_date.desc(), Trip.id.asc())
        .all()
    )


def get_trip(db: Session, trip_id: int) -> Optional[Trip]:
    return db.get(Trip, trip_id)


def list_updates(db: Session, trip_id: int) -> List[TripUpdate]:
    """Updates of one trip, newest first."""
    return (
        db.query(TripUpdate)
        .filter(TripUpdate.trip_id == trip_id)
        .order_by(TripUpdate.created_at.desc(), TripUpdate.id.desc())
        .all()
    )


def updates_by_trip(db: Session, trip_ids: Iterable[int]) -> Dict[int, List[TripUpdate]]:
    """Updates for many trips in one query, grouped per trip, newest first."""
    ids = list(trip_ids)
    grouped: Dict[int, List[TripUpdate]] = defaultdict(list)
    if not ids:
        return grouped
    rows = (
        db.query(TripUpdate)
        .filter(TripUpdate.trip_id.in_(ids))
        .order_by(TripUpdate.created_at.desc(), TripUpdate.id.desc())
        .all()
    )
    for update in rows:
        grouped[update.trip_id].append(update)
    return grouped


def insert_trips(db: Session, trips: Sequence[TripCreate]) -> List[Trip]:
    """Persist *trips* in one transaction and return them with their ids."""
    records = [Trip(**trip.model_dump()) for trip in trips]
    try:
        db.add_all(records)
        db.commit()
    except Exception:
        db.rollback()
        raise
    for record in records:
        db.refresh(record)
    return records


def delete_trips(db: Session, trip_ids: Iterable[int]) -> int:
    """Delete trips and their updates; return how many trips were removed."""
    ids = list(set(trip_ids))
    if not ids:
        return 0
    try:
        db.query(TripUpdate).filter(TripUpdate.trip_id.in_(ids)).delete(synchronize_session=False)
        deleted = db.query(Trip).filter(Trip.id.in_(ids)).delete(synchronize_session=False)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return deleted


def add_update(db: Session, trip_id: int, payload: TripUpdateCreate) -> TripUpdate:
    update = TripUpdate(trip_id=trip_id, **payload.model_dump())
    try:
        db.add(update)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(update)
    return update


def reset_trips(db: Session) -> None:
    """Delete every trip and update without committing."""
    db.query(TripUpdate).delete()
    db.query(Trip).delete()
