"""Abstract interfaces for infrastructure abstraction."""

from cadence.interfaces.auth_provider import IAuthProvider, User
from cadence.interfaces.task_repository import ITaskRepository, ITaskTransaction

__all__ = [
    "IAuthProvider",
    "User",
    "ITaskRepository",
    "ITaskTransaction",
]
