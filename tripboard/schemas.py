from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tripboard.utils import parse_delivery_date


class TripBase(BaseModel):
    system_trip_id: str = Field(..., min_length=1)
    external_trip_id: Optional[str] = None
    delivery_date: date = Field(...)
    driver_name: str = Field(..., min_length=1)
    origin: Optional[str] = None
    destination: str = Field(..., min_length=1)
    project: str = Field(..., min_length=1)
    plate_number: str = Field(..., min_length=1)
    property_type: str = Field(..., min_length=1)
    work_shift: str = Field(..., min_length=1)

    model_config = ConfigDict(str_strip_whitespace=True)

    @field_validator("delivery_date", mode="before")
    @classmethod
    def _parse_date(cls, value):
        return parse_delivery_date(value)

    @field_validator("external_trip_id", "origin", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class TripCreate(TripBase):
    pass


class TripRead(TripBase):
    id: int

    model_config = ConfigDict(from_attributes=True)


class TripUpdateCreate(BaseModel):
    category: str = Field(..., min_length=1)
    description: Optional[str] = None

    model_config = ConfigDict(str_strip_whitespace=True)


class TripUpdateRead(BaseModel):
    id: int
    trip_id: int
    category: str
    description: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TripRowRead(TripRead):
    """A trip as shown in the table: the trip plus its derived status."""

    status: Optional[str] = None
    status_label: str
    last_update_at: Optional[datetime] = None
    updates: List[TripUpdateRead] = Field(default_factory=list)


class UploadResult(BaseModel):
    inserted: int = Field(..., ge=0)
    rejected: int = Field(0, ge=0)
    skipped: int = Field(0, ge=0)
    message: str


class DeleteResult(BaseModel):
    deleted: int = Field(..., ge=0)
    message: str
