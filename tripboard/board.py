"""Per-view trip board: loaded trips, their updates, filters and selection.

A :class:`TripBoard` is owned by one view. It is only mutated from its own
coroutines, so no locking is involved. Operations never raise: failures are
logged and turned into :class:`Notification` entries, leaving the state as it
was before the call.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Set

from tripboard import messages
from tripboard.gateway import BackendError, TripGateway
from tripboard.schemas import TripRead, TripUpdateCreate, TripUpdateRead
from tripboard.selection import SelectionModel
from tripboard.trip_parser import TripFileError, decode_upload, ensure_csv_filename, parse_trips_csv
from tripboard.utils import format_elapsed
from tripboard.view import (
    ALL,
    SortConfig,
    ViewFilters,
    apply_view,
    current_status,
    last_update_at,
    unique_projects,
)

logger = logging.getLogger(__name__)


class LoadState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


@dataclass(frozen=True)
class Notification:
    level: str  # "success" or "error"
    message: str


class TripBoard:
    def __init__(self, gateway: TripGateway) -> None:
        self.gateway = gateway
        self.trips: List[TripRead] = []
        self.updates: Dict[int, List[TripUpdateRead]] = {}
        self.filters = ViewFilters()
        self.sort = SortConfig()
        self.selection = SelectionModel()
        self.expanded: Set[int] = set()
        self.notifications: List[Notification] = []

        self.auth_state = LoadState.IDLE
        self.trips_state = LoadState.IDLE
        self.updates_state = LoadState.IDLE

    # ── Load ────────────────────────────────────────────────────────────────

    @property
    def is_authenticated(self) -> bool:
        return self.auth_state is LoadState.LOADED

    @property
    def is_loading(self) -> bool:
        return LoadState.LOADING in (self.auth_state, self.trips_state)

    async def start(self) -> None:
        """Authenticate, then load trips and all of their updates."""
        self.auth_state = LoadState.LOADING
        try:
            await self.gateway.authenticate()
        except BackendError:
            logger.exception("Authentication failed")
            self.auth_state = LoadState.FAILED
            self._notify_error(messages.AUTH_FAILED)
            return
        self.auth_state = LoadState.LOADED

        if await self.load_trips():
            await self.load_updates()

    async def load_trips(self) -> bool:
        self.trips_state = LoadState.LOADING
        try:
            trips = await self.gateway.fetch_trips()
        except BackendError:
            logger.exception("Error loading trips")
            self.trips_state = LoadState.FAILED
            self._notify_error(messages.LOAD_FAILED)
            return False

        self.trips = list(trips)
        known = {trip.id for trip in self.trips}
        self.selection.prune(known)
        self.expanded &= known
        self.trips_state = LoadState.LOADED
        return True

    async def load_updates(self) -> None:
        """Fetch updates for every loaded trip concurrently and wait for all."""
        self.updates_state = LoadState.LOADING
        trip_ids = [trip.id for trip in self.trips]
        results = await asyncio.gather(
            *(self.gateway.fetch_updates(trip_id) for trip_id in trip_ids),
            return_exceptions=True,
        )

        updates: Dict[int, List[TripUpdateRead]] = {}
        for trip_id, result in zip(trip_ids, results):
            if isinstance(result, BaseException):
                logger.error("Error loading updates for trip %s: %s", trip_id, result)
                updates[trip_id] = []
            else:
                updates[trip_id] = list(result)
        self.updates = updates
        self.updates_state = LoadState.LOADED

    # ── View ────────────────────────────────────────────────────────────────

    def rows(self) -> List[TripRead]:
        return apply_view(self.trips, self.filters, self.sort, self.updates)

    def projects(self) -> List[str]:
        return unique_projects(self.trips)

    def set_search(self, term: str) -> None:
        self.filters = ViewFilters(term, self.filters.project, self.filters.status)

    def set_project_filter(self, project: str = ALL) -> None:
        self.filters = ViewFilters(self.filters.search, project, self.filters.status)

    def set_status_filter(self, status: str = ALL) -> None:
        self.filters = ViewFilters(self.filters.search, self.filters.project, status)

    def sort_by(self, field: str) -> None:
        self.sort = self.sort.toggle(field)

    def updates_for(self, trip_id: int) -> List[TripUpdateRead]:
        return self.updates.get(trip_id, [])

    def status_of(self, trip_id: int) -> Optional[str]:
        return current_status(trip_id, self.updates)

    def time_since_update(self, trip_id: int, now: Optional[datetime] = None) -> Optional[str]:
        return format_elapsed(last_update_at(trip_id, self.updates), now)

    def toggle_expanded(self, trip_id: int) -> None:
        if trip_id in self.expanded:
            self.expanded.discard(trip_id)
        else:
            self.expanded.add(trip_id)

    # ── Selection ───────────────────────────────────────────────────────────

    def toggle_selection(self, index: int, checked: bool, *, extend: bool = False) -> None:
        try:
            self.selection.toggle(self.rows(), index, checked, extend=extend)
        except ValueError as exc:
            logger.warning("Ignoring selection toggle: %s", exc)

    def select_all(self, checked: bool = True) -> None:
        self.selection.select_all(self.rows(), checked)

    def all_selected(self) -> bool:
        return self.selection.all_selected(self.rows())

    # ── Mutations ───────────────────────────────────────────────────────────

    async def upload_csv(self, filename: str, content: bytes) -> int:
        """Parse and insert a CSV upload; return the number of trips stored."""
        if not self.is_authenticated:
            self._notify_error(messages.AUTH_PENDING)
            return 0

        try:
            ensure_csv_filename(filename)
            report = parse_trips_csv(decode_upload(content))
        except TripFileError as exc:
            logger.warning("Rejected upload %s: %s", filename, exc)
            self._notify_error(str(exc))
            return 0

        try:
            inserted = await self.gateway.insert_trips(report.trips)
        except BackendError:
            logger.exception("Error processing file %s", filename)
            self._notify_error(messages.UPLOAD_FAILED)
            return 0

        merged = self.trips + list(inserted)
        self.trips = sorted(merged, key=lambda trip: trip.delivery_date, reverse=True)
        for trip in inserted:
            self.updates.setdefault(trip.id, [])
        self._notify_success(messages.upload_success(len(inserted)))
        return len(inserted)

    async def delete(self, trip_id: Optional[int] = None) -> int:
        """Delete the selected trips, or *trip_id* when nothing is selected."""
        if len(self.selection):
            targets = set(self.selection.selected)
        elif trip_id is not None:
            targets = {trip_id}
        else:
            return 0

        try:
            await self.gateway.delete_trips(sorted(targets))
        except BackendError:
            logger.exception("Error deleting trips")
            self._notify_error(messages.DELETE_FAILED)
            return 0

        self.trips = [trip for trip in self.trips if trip.id not in targets]
        for removed in targets:
            self.updates.pop(removed, None)
        self.expanded -= targets
        self.selection.discard(targets)
        self.selection.prune(trip.id for trip in self.trips)

        self._notify_success(messages.delete_success(len(targets)))
        return len(targets)

    async def add_update(self, trip_id: int, category: str, description: Optional[str] = None) -> Optional[TripUpdateRead]:
        try:
            payload = TripUpdateCreate(category=category, description=description)
            update = await self.gateway.add_update(trip_id, payload)
        except (BackendError, ValueError):
            logger.exception("Error creating update for trip %s", trip_id)
            self._notify_error(messages.UPDATE_FAILED)
            return None

        self.updates[trip_id] = [update] + self.updates.get(trip_id, [])
        self._notify_success(messages.UPDATE_CREATED)
        return update

    # ── Notifications ───────────────────────────────────────────────────────

    def _notify_success(self, message: str) -> None:
        self.notifications.append(Notification("success", message))

    def _notify_error(self, message: str) -> None:
        self.notifications.append(Notification("error", message))
