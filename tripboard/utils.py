"""Utility helpers shared across the trip services."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Optional

# Spreadsheet exports mix ISO dates with day-first ones.
_DATE_FORMATS: tuple[str, ...] = (
    "%d/%m/%Y",
    "%d-%m-%Y",
    "%Y/%m/%d",
)


def parse_delivery_date(raw: str | date | datetime | None) -> date:
    """Parse a delivery date cell into a ``date``.

    Raises ``ValueError`` when the value is blank or matches none of the
    accepted formats.
    """
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw

    text = (raw or "").strip()
    if not text:
        raise ValueError("delivery date is required")

    try:
        return date.fromisoformat(text)
    except ValueError:
        pass

    formats: Iterable[str] = _DATE_FORMATS
    for fmt in formats:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    raise ValueError(f"unrecognised delivery date '{text}'")


def as_utc(moment: datetime) -> datetime:
    """Return *moment* as an aware UTC datetime (naive values are taken as UTC)."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def format_elapsed(since: Optional[datetime], now: Optional[datetime] = None) -> Optional[str]:
    """Short label for the time elapsed since *since*, e.g. ``2d 3h`` or ``45m``."""
    if since is None:
        return None
    current = as_utc(now) if now is not None else datetime.now(timezone.utc)
    delta = current - as_utc(since)
    if delta < timedelta(0):
        delta = timedelta(0)

    minutes = int(delta.total_seconds() // 60)
    days, minutes = divmod(minutes, 60 * 24)
    hours, minutes = divmod(minutes, 60)
    if days:
        return f"{days}d {hours}h"
    if hours:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


__all__ = ["as_utc", "format_elapsed", "parse_delivery_date"]
