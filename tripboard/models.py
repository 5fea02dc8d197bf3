from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Trip(Base):
    __tablename__ = "trips"

    id = Column(Integer, primary_key=True, index=True)
    system_trip_id = Column(String, nullable=False, index=True)  # ID_Viaje
    external_trip_id = Column(String, nullable=True)
    delivery_date = Column(Date, nullable=False, index=True)
    driver_name = Column(String, nullable=False)
    origin = Column(String, nullable=True)
    destination = Column(String, nullable=False)
    project = Column(String, nullable=False, index=True)
    plate_number = Column(String, nullable=False)
    property_type = Column(String, nullable=False)  # PROPIEDAD
    work_shift = Column(String, nullable=False)  # JORNADA
    created_at = Column(DateTime, default=_utc_now)

    updates = relationship(
        "TripUpdate",
        back_populates="trip",
        cascade="all, delete-orphan",
        order_by=lambda: TripUpdate.created_at.desc(),
    )

    def __repr__(self) -> str:
        return f"<Trip(id={self.id}, system_trip_id='{self.system_trip_id}', project='{self.project}')>"


class TripUpdate(Base):
    __tablename__ = "trip_updates"

    id = Column(Integer, primary_key=True, index=True)
    trip_id = Column(Integer, ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, index=True)
    category = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, default=_utc_now, index=True)

    trip = relationship("Trip", back_populates="updates")
