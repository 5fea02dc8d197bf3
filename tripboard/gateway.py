"""Async boundary between the trip board and the trip store."""

from __future__ import annotations

import hmac
import logging
from abc import ABC, abstractmethod
from typing import Callable, Iterable, List, Optional, Sequence, TypeVar

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tripboard import store
from tripboard.schemas import TripCreate, TripRead, TripUpdateCreate, TripUpdateRead

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BackendError(Exception):
    """The trip store could not complete an operation."""


class AuthenticationError(BackendError):
    pass


class TripGateway(ABC):
    """Operations the board needs from the trip store.

    Every method except :meth:`authenticate` must be called after a
    successful authentication.
    """

    @abstractmethod
    async def authenticate(self) -> None: ...

    @abstractmethod
    async def fetch_trips(self) -> List[TripRead]: ...

    @abstractmethod
    async def fetch_updates(self, trip_id: int) -> List[TripUpdateRead]: ...

    @abstractmethod
    async def insert_trips(self, trips: Sequence[TripCreate]) -> List[TripRead]: ...

    @abstractmethod
    async def delete_trips(self, trip_ids: Iterable[int]) -> int: ...

    @abstractmethod
    async def add_update(self, trip_id: int, payload: TripUpdateCreate) -> TripUpdateRead: ...


class SqlTripGateway(TripGateway):
    """Gateway backed by SQLAlchemy sessions from *session_factory*."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        *,
        token: Optional[str] = None,
        expected_token: Optional[str] = None,
    ) -> None:
        self._session_factory = session_factory
        self._token = token
        self._expected_token = expected_token
        self._authenticated = False

    async def authenticate(self) -> None:
        if self._expected_token is not None:
            supplied = self._token or ""
            if not hmac.compare_digest(supplied, self._expected_token):
                raise AuthenticationError("Invalid API token")
        self._authenticated = True

    async def fetch_trips(self) -> List[TripRead]:
        return await self._run(
            lambda db: [TripRead.model_validate(trip) for trip in store.list_trips(db)]
        )

    async def fetch_updates(self, trip_id: int) -> List[TripUpdateRead]:
        return await self._run(
            lambda db: [TripUpdateRead.model_validate(u) for u in store.list_updates(db, trip_id)]
        )

    async def insert_trips(self, trips: Sequence[TripCreate]) -> List[TripRead]:
        return await self._run(
            lambda db: [TripRead.model_validate(trip) for trip in store.insert_trips(db, trips)]
        )

    async def delete_trips(self, trip_ids: Iterable[int]) -> int:
        ids = list(trip_ids)
        return await self._run(lambda db: store.delete_trips(db, ids))

    async def add_update(self, trip_id: int, payload: TripUpdateCreate) -> TripUpdateRead:
        def _add(db: Session) -> TripUpdateRead:
            if store.get_trip(db, trip_id) is None:
                raise BackendError(f"Trip {trip_id} does not exist")
            return TripUpdateRead.model_validate(store.add_update(db, trip_id, payload))

        return await self._run(_add)

    async def _run(self, operation: Callable[[Session], T]) -> T:
        if not self._authenticated:
            raise AuthenticationError("Not authenticated")
        return await run_in_threadpool(self._call, operation)

    def _call(self, operation: Callable[[Session], T]) -> T:
        db = self._session_factory()
        try:
            return operation(db)
        except SQLAlchemyError as exc:
            logger.exception("Trip store operation failed")
            raise BackendError(str(exc)) from exc
        finally:
            db.close()


__all__ = ["AuthenticationError", "BackendError", "SqlTripGateway", "TripGateway"]
