import hmac
import logging
from contextlib import asynccontextmanager
from typing import Generator, List, Literal, Optional

from fastapi import Depends, FastAPI, File, Header, HTTPException, Query, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from tripboard import messages, store
from tripboard.config import Config, configure_logging
from tripboard.database import SessionLocal, init_db
from tripboard.gateway import AuthenticationError, BackendError, SqlTripGateway
from tripboard.models import Trip, TripUpdate
from tripboard.schemas import (
    DeleteResult,
    TripRead,
    TripRowRead,
    TripUpdateCreate,
    TripUpdateRead,
    UploadResult,
)
from tripboard.trip_parser import TripFileError, decode_upload, ensure_csv_filename, parse_trips_csv
from tripboard.view import (
    ALL,
    SORT_FIELDS,
    SortConfig,
    ViewFilters,
    apply_view,
    current_status,
    last_update_at,
    status_label,
    unique_projects,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    init_db()
    yield


app = FastAPI(
    title="Trip Tracking API",
    description="Upload, list and delete delivery trips and their status updates.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=Config.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def require_token(x_api_key: Optional[str] = Header(default=None)) -> None:
    expected = Config.API_TOKEN
    if expected is None:
        return
    if x_api_key is None or not hmac.compare_digest(x_api_key, expected):
        raise HTTPException(status_code=401, detail=messages.INVALID_CREDENTIALS)


async def get_gateway(x_api_key: Optional[str] = Header(default=None)) -> SqlTripGateway:
    """Authenticated gateway for the endpoints that change stored trips."""
    gateway = SqlTripGateway(SessionLocal, token=x_api_key, expected_token=Config.API_TOKEN)
    try:
        await gateway.authenticate()
    except AuthenticationError:
        raise HTTPException(status_code=401, detail=messages.INVALID_CREDENTIALS)
    return gateway


def _trip_row(trip: Trip, updates: dict) -> TripRowRead:
    trip_updates = updates.get(trip.id, [])
    base = TripRead.model_validate(trip).model_dump()
    return TripRowRead(
        **base,
        status=current_status(trip.id, updates),
        status_label=status_label(trip.id, updates),
        last_update_at=last_update_at(trip.id, updates),
        updates=[TripUpdateRead.model_validate(update) for update in trip_updates],
    )


def _get_trip_or_404(db: Session, trip_id: int) -> Trip:
    trip = store.get_trip(db, trip_id)
    if trip is None:
        raise HTTPException(status_code=404, detail=messages.TRIP_NOT_FOUND)
    return trip


async def _delete(gateway: SqlTripGateway, trip_ids: List[int]) -> DeleteResult:
    try:
        deleted = await gateway.delete_trips(trip_ids)
    except BackendError:
        logger.error("Error deleting trips %s", trip_ids)
        raise HTTPException(status_code=500, detail=messages.DELETE_FAILED)
    if deleted == 0:
        raise HTTPException(status_code=404, detail=messages.TRIP_NOT_FOUND)
    return DeleteResult(deleted=deleted, message=messages.delete_success(deleted))


@app.get("/api/health")
def health_check():
    return {"status": "running"}


@app.get(
    "/api/trips",
    response_model=List[TripRowRead],
    dependencies=[Depends(require_token)],
)
def list_trips(
    search: str = "",
    project: str = ALL,
    status: str = ALL,
    sort: Optional[Literal[SORT_FIELDS]] = None,
    direction: Literal["asc", "desc"] = "asc",
    db: Session = Depends(get_db),
) -> List[TripRowRead]:
    trips = store.list_trips(db)
    updates = store.updates_by_trip(db, [trip.id for trip in trips])
    rows = apply_view(
        trips,
        ViewFilters(search=search, project=project, status=status),
        SortConfig(field=sort, direction=direction),
        updates,
    )
    return [_trip_row(trip, updates) for trip in rows]


@app.get(
    "/api/trips/projects",
    response_model=List[str],
    dependencies=[Depends(require_token)],
)
def list_projects(db: Session = Depends(get_db)) -> List[str]:
    return unique_projects(store.list_trips(db))


@app.post(
    "/api/trips/upload",
    response_model=UploadResult,
    status_code=201,
)
async def upload_trips(
    file: UploadFile = File(...),
    gateway: SqlTripGateway = Depends(get_gateway),
) -> UploadResult:
    """Import a CSV of trips; rows that fail validation are left out."""
    try:
        ensure_csv_filename(file.filename)
    except TripFileError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    content = await file.read()
    if len(content) > Config.MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail=messages.FILE_TOO_LARGE)

    try:
        report = parse_trips_csv(decode_upload(content))
    except TripFileError as exc:
        logger.warning("Rejected upload %s: %s", file.filename, exc)
        raise HTTPException(status_code=400, detail=str(exc))

    try:
        inserted = await gateway.insert_trips(report.trips)
    except BackendError:
        logger.error("Error storing trips from %s", file.filename)
        raise HTTPException(status_code=500, detail=messages.UPLOAD_FAILED)

    logger.info("Uploaded %d trips from %s", len(inserted), file.filename)
    return UploadResult(
        inserted=len(inserted),
        rejected=report.rejected,
        skipped=len(report.skipped_lines),
        message=messages.upload_success(len(inserted)),
    )


@app.delete(
    "/api/trips",
    response_model=DeleteResult,
)
async def delete_trips(
    ids: List[int] = Query(...),
    gateway: SqlTripGateway = Depends(get_gateway),
) -> DeleteResult:
    return await _delete(gateway, ids)


@app.get(
    "/api/trips/{trip_id}",
    response_model=TripRowRead,
    dependencies=[Depends(require_token)],
)
def get_trip(trip_id: int, db: Session = Depends(get_db)) -> TripRowRead:
    trip = _get_trip_or_404(db, trip_id)
    updates = {trip.id: store.list_updates(db, trip.id)}
    return _trip_row(trip, updates)


@app.delete(
    "/api/trips/{trip_id}",
    response_model=DeleteResult,
)
async def delete_trip(trip_id: int, gateway: SqlTripGateway = Depends(get_gateway)) -> DeleteResult:
    return await _delete(gateway, [trip_id])


@app.get(
    "/api/trips/{trip_id}/updates",
    response_model=List[TripUpdateRead],
    dependencies=[Depends(require_token)],
)
def get_trip_updates(trip_id: int, db: Session = Depends(get_db)) -> List[TripUpdate]:
    _get_trip_or_404(db, trip_id)
    return store.list_updates(db, trip_id)


@app.post(
    "/api/trips/{trip_id}/updates",
    response_model=TripUpdateRead,
    status_code=201,
)
async def create_trip_update(
    trip_id: int,
    payload: TripUpdateCreate,
    gateway: SqlTripGateway = Depends(get_gateway),
    db: Session = Depends(get_db),
) -> TripUpdateRead:
    """Record a status event for a trip."""
    await run_in_threadpool(_get_trip_or_404, db, trip_id)
    try:
        return await gateway.add_update(trip_id, payload)
    except BackendError:
        logger.error("Error creating update for trip %s", trip_id)
        raise HTTPException(status_code=500, detail=messages.UPDATE_FAILED)
