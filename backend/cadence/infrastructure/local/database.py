"""
SQLite database configuration and ORM models.

This module defines the SQLAlchemy ORM models and database initialization.
"""

from functools import lru_cache
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    Time,
    event,
)
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from cadence.core.config import get_settings
from cadence.utils.datetime_utils import now_utc


class Base(DeclarativeBase):
    """SQLAlchemy declarative base."""

    pass


# ===========================================
# ORM Models
# ===========================================


class TaskORM(Base):
    """Task ORM model. One row per occurrence; series are implicit."""

    __tablename__ = "tasks"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String(255), nullable=False, index=True)
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), default="todo", nullable=False)
    due_date = Column(Date, nullable=True)
    start_date = Column(Date, nullable=True)
    start_time = Column(Time, nullable=True)
    duration_minutes = Column(Integer, nullable=True)

    # Series fields
    series_master_id = Column(String(36), nullable=True)
    recurrence = Column(JSON, nullable=True)  # Only set on the series master
    is_exception = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=now_utc, nullable=False)
    updated_at = Column(DateTime, default=now_utc, onupdate=now_utc, nullable=False)

    __table_args__ = (
        Index("ix_tasks_user_series_start", "user_id", "series_master_id", "start_date"),
        Index("ix_tasks_user_start", "user_id", "start_date"),
    )


# ===========================================
# Database Session Management
# ===========================================


def configure_sqlite_transactions(engine: AsyncEngine) -> AsyncEngine:
    """
    Make every session transaction start with ``BEGIN IMMEDIATE``.

    The sqlite3 driver defers ``BEGIN`` until the first write statement, so the
    reads a mutation is classified from would otherwise run outside its
    transaction. A concurrent writer waits for the lock, or fails with
    "database is locked" once the driver timeout expires.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


@lru_cache()
def get_engine():
    """Get async engine instance."""
    settings = get_settings()
    engine = create_async_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
    return configure_sqlite_transactions(engine)


def get_session_factory():
    """Get async session factory."""
    engine = get_engine()
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db():
    """Initialize database tables."""
    engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
