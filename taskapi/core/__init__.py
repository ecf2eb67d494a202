"""
Core module - domain models, errors and shared utilities.

This module contains:
- models: User and Task records plus request schemas
- errors: the error taxonomy mapped onto HTTP statuses
- utils: id generation and time helpers
"""

from taskapi.core.models import (
    Role,
    Task,
    TaskCreate,
    TaskPriority,
    TaskStatus,
    TaskUpdate,
    User,
    UserCreate,
    UserPublic,
)
from taskapi.core.errors import (
    AppError,
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    UnexpectedError,
    ValidationError,
)
from taskapi.core.utils import generate_id, is_valid_id, utc_now

__all__ = [
    # Models
    "Role",
    "Task",
    "TaskCreate",
    "TaskPriority",
    "TaskStatus",
    "TaskUpdate",
    "User",
    "UserCreate",
    "UserPublic",
    # Errors
    "AppError",
    "AuthenticationError",
    "AuthorizationError",
    "ConflictError",
    "NotFoundError",
    "UnexpectedError",
    "ValidationError",
    # Utils
    "generate_id",
    "is_valid_id",
    "utc_now",
]
