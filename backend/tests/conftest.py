"""
Shared pytest fixtures.
"""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from cadence.infrastructure.local.database import Base, configure_sqlite_transactions
from cadence.infrastructure.local.task_repository import SqliteTaskRepository
from cadence.services.task_series_service import TaskSeriesService


@pytest.fixture
async def session_factory():
    """In-memory database shared by every session of one test."""
    engine = configure_sqlite_transactions(
        create_async_engine(
            "sqlite+aiosqlite:///:memory:",
            poolclass=StaticPool,
        )
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def test_user_id() -> str:
    return "test_user"


@pytest.fixture
def task_repo(session_factory) -> SqliteTaskRepository:
    return SqliteTaskRepository(session_factory=session_factory)


@pytest.fixture
def series_service(task_repo) -> TaskSeriesService:
    return TaskSeriesService(task_repo=task_repo)
