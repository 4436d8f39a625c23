"""Shared SQLAlchemy engine for the Oracle procedure gateway."""
from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from metamorfose.config import get_settings


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    settings = get_settings()
    return create_engine(
        settings.database_url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_recycle=settings.db_pool_recycle_seconds,
        pool_pre_ping=True,
    )
