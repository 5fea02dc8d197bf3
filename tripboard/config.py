# tripboard/config.py
import logging
import os


def _to_bool(val: str | None, default: bool = False) -> bool:
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "on"}


def _to_int(val: str | None, default: int) -> int:
    try:
        return int(val) if val is not None else default
    except ValueError:
        return default


def _to_list(val: str | None, default: str) -> list[str]:
    raw = val if val is not None else default
    return [item.strip() for item in raw.split(",") if item.strip()]


class Config:
    # ── Storage ─────────────────────────────────────────────────────────────
    DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///./trips.db")
    SQL_ECHO = _to_bool(os.environ.get("SQL_ECHO"), False)

    # ── Auth ────────────────────────────────────────────────────────────────
    API_TOKEN = os.environ.get("TRIPBOARD_API_TOKEN")  # unset: no token required

    # ── HTTP ────────────────────────────────────────────────────────────────
    CORS_ORIGINS = _to_list(os.environ.get("CORS_ORIGINS"), "*")
    MAX_UPLOAD_BYTES = _to_int(os.environ.get("MAX_UPLOAD_BYTES"), 5 * 1024 * 1024)

    # ── Logging ─────────────────────────────────────────────────────────────
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=level or Config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
