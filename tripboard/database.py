# tripboard/database.py
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from tripboard.config import Config
from tripboard.models import Base

DATABASE_URL = Config.DATABASE_URL


def _connect_args(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    DATABASE_URL,
    connect_args=_connect_args(DATABASE_URL),
    echo=Config.SQL_ECHO,
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db():
    """Create tables if they do not exist"""
    Base.metadata.create_all(bind=engine)

