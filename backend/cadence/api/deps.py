"""
Dependency injection for API endpoints.

This module provides FastAPI dependencies that inject the correct
infrastructure implementations based on environment configuration.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from cadence.core.config import get_settings
from cadence.core.exceptions import AuthenticationError
from cadence.interfaces.auth_provider import IAuthProvider, User
from cadence.interfaces.task_repository import ITaskRepository
from cadence.services.occurrence_generator import OccurrenceGenerator
from cadence.services.task_series_service import TaskSeriesService


# ===========================================
# Repository Dependencies
# ===========================================


@lru_cache()
def get_task_repository() -> ITaskRepository:
    """Get task repository instance."""
    from cadence.infrastructure.local.task_repository import SqliteTaskRepository

    return SqliteTaskRepository()


# ===========================================
# Service Dependencies
# ===========================================


@lru_cache()
def get_occurrence_generator() -> OccurrenceGenerator:
    """Get occurrence generator configured with the materialization horizon."""
    settings = get_settings()
    return OccurrenceGenerator(
        max_occurrences=settings.RECURRENCE_MAX_OCCURRENCES,
        max_count=settings.RECURRENCE_MAX_COUNT,
    )


def get_task_series_service(
    repo: ITaskRepository = Depends(get_task_repository),
    generator: OccurrenceGenerator = Depends(get_occurrence_generator),
) -> TaskSeriesService:
    """Get task series service instance."""
    return TaskSeriesService(task_repo=repo, generator=generator)


@lru_cache()
def get_auth_provider() -> IAuthProvider:
    """Get auth provider instance."""
    from cadence.infrastructure.local.mock_auth import MockAuthProvider

    return MockAuthProvider(enabled=get_settings().AUTH_ENABLED)


# ===========================================
# User Authentication
# ===========================================


async def get_current_user(
    authorization: Annotated[str | None, Header()] = None,
    auth_provider: IAuthProvider = Depends(get_auth_provider),
) -> User:
    """
    Get current authenticated user.

    When authentication is disabled, returns the development user.
    """
    if not auth_provider.is_enabled():
        return User(id="dev_user", email="dev@example.com", display_name="Developer")

    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header required",
        )

    # Extract token from "Bearer <token>"
    try:
        scheme, token = authorization.split()
        if scheme.lower() != "bearer":
            raise ValueError("Invalid scheme")
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format",
        )

    try:
        return await auth_provider.verify_token(token)
    except AuthenticationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
        )


# ===========================================
# Type Aliases for Dependency Injection
# ===========================================

SeriesService = Annotated[TaskSeriesService, Depends(get_task_series_service)]
CurrentUser = Annotated[User, Depends(get_current_user)]
