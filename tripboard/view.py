"""Filter and sort stages that turn the loaded trips into table rows.

Every function here is pure: inputs are never mutated and the same inputs
always give the same output.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

ALL = "all"
NO_STATUS_LABEL = "sin estado"

ASC = "asc"
DESC = "desc"

SORT_FIELDS = (
    "trip_id",
    "delivery_date",
    "plate_number",
    "driver_name",
    "project",
    "status_category",
    "last_update",
)

# trip id -> updates, newest first
UpdateMap = Mapping[int, Sequence[Any]]


@dataclass(frozen=True)
class ViewFilters:
    search: str = ""
    project: str = ALL
    status: str = ALL


@dataclass(frozen=True)
class SortConfig:
    field: Optional[str] = None
    direction: str = ASC

    def __post_init__(self) -> None:
        if self.field is not None and self.field not in SORT_FIELDS:
            raise ValueError(f"Unknown sort field '{self.field}'")
        if self.direction not in (ASC, DESC):
            raise ValueError(f"Unknown sort direction '{self.direction}'")

    def toggle(self, field: str) -> "SortConfig":
        """Same field flips the direction, a new field starts ascending."""
        if self.field == field and self.direction == ASC:
            return SortConfig(field=field, direction=DESC)
        return SortConfig(field=field, direction=ASC)


def latest_update(trip_id: int, updates: UpdateMap) -> Optional[Any]:
    trip_updates = updates.get(trip_id) or ()
    return trip_updates[0] if trip_updates else None


def current_status(trip_id: int, updates: UpdateMap) -> Optional[str]:
    update = latest_update(trip_id, updates)
    return update.category if update is not None else None


def last_update_at(trip_id: int, updates: UpdateMap) -> Optional[datetime]:
    update = latest_update(trip_id, updates)
    return update.created_at if update is not None else None


def status_label(trip_id: int, updates: UpdateMap) -> str:
    return current_status(trip_id, updates) or NO_STATUS_LABEL


def matches_search(trip: Any, term: str) -> bool:
    needle = term.lower()
    return (
        needle in trip.system_trip_id.lower()
        or needle in (trip.external_trip_id or "").lower()
        or needle in trip.driver_name.lower()
    )


def filter_by_search(trips: Sequence[Any], term: str) -> List[Any]:
    if not term:
        return list(trips)
    return [trip for trip in trips if matches_search(trip, term)]


def filter_by_project(trips: Sequence[Any], project: str) -> List[Any]:
    if project == ALL:
        return list(trips)
    return [trip for trip in trips if trip.project == project]


def filter_by_status(trips: Sequence[Any], status: str, updates: UpdateMap) -> List[Any]:
    if status == ALL:
        return list(trips)
    return [trip for trip in trips if current_status(trip.id, updates) == status]


def _text(value: Optional[str]) -> Optional[str]:
    return value.casefold() if value is not None else None


def _sort_key(field: str, updates: UpdateMap) -> Callable[[Any], Any]:
    keys: Dict[str, Callable[[Any], Any]] = {
        "trip_id": lambda trip: _text(trip.system_trip_id),
        "delivery_date": lambda trip: trip.delivery_date,
        "plate_number": lambda trip: _text(trip.plate_number),
        "driver_name": lambda trip: _text(trip.driver_name),
        "project": lambda trip: _text(trip.project),
        "status_category": lambda trip: _text(current_status(trip.id, updates)),
        "last_update": lambda trip: last_update_at(trip.id, updates),
    }
    return keys[field]


def sort_trips(trips: Sequence[Any], sort: SortConfig, updates: UpdateMap) -> List[Any]:
    """Stable sort; trips without a value for the key always go last."""
    if sort.field is None:
        return list(trips)

    key = _sort_key(sort.field, updates)
    present = [trip for trip in trips if key(trip) is not None]
    missing = [trip for trip in trips if key(trip) is None]
    return sorted(present, key=key, reverse=sort.direction == DESC) + missing


def apply_view(
    trips: Sequence[Any],
    filters: ViewFilters,
    sort: SortConfig,
    updates: UpdateMap,
) -> List[Any]:
    rows = filter_by_search(trips, filters.search)
    rows = filter_by_project(rows, filters.project)
    rows = filter_by_status(rows, filters.status, updates)
    return sort_trips(rows, sort, updates)


def unique_projects(trips: Sequence[Any]) -> List[str]:
    return [ALL] + sorted({trip.project for trip in trips})


__all__ = [
    "ALL",
    "ASC",
    "DESC",
    "NO_STATUS_LABEL",
    "SORT_FIELDS",
    "SortConfig",
    "ViewFilters",
    "apply_view",
    "current_status",
    "filter_by_project",
    "filter_by_search",
    "filter_by_status",
    "last_update_at",
    "latest_update",
    "matches_search",
    "sort_trips",
    "status_label",
    "unique_projects",
]
