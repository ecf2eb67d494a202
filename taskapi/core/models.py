"""
Core data models for the task API.

Users own tasks; a task's owner is fixed at creation. Attributes are
snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model: camelCase aliases, accepts either spelling on input."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        validate_default=True,
    )

    def to_wire(self) -> dict:
        """JSON-ready dict using wire (camelCase) names."""
        return self.model_dump(mode="json", by_alias=True)


# =============================================================================
# Enums
# =============================================================================


class Role(str, Enum):
    """Platform-wide role of a user."""

    USER = "user"
    ADMIN = "admin"


class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in-progress"
    DONE = "done"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# =============================================================================
# Users
# =============================================================================


class User(CamelModel):
    """User as stored in the credential store."""

    id: str
    name: str
    email: str
    password_hash: str
    role: Role = Role.USER
    created_at: datetime
    updated_at: datetime

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value

    def public(self) -> UserPublic:
        """Everything except the password hash."""
        return UserPublic.model_validate(self.model_dump(exclude={"password_hash", "updated_at"}))


class UserCreate(CamelModel):
    """User registration data. Self-registration never grants admin."""

    name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)


class UserPublic(CamelModel):
    """User data returned to clients (no sensitive fields)."""

    id: str
    name: str
    email: str
    role: Role
    created_at: datetime


# =============================================================================
# Tasks
# =============================================================================


def _as_utc(value: datetime | None) -> datetime | None:
    """Naive datetimes are taken as UTC; aware ones are converted to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Task(CamelModel):
    """A task record. `owner` holds the owning user's id."""

    id: str
    title: str
    description: str = ""
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: datetime | None = None
    owner: str
    created_at: datetime
    updated_at: datetime


class TaskCreate(CamelModel):
    """Fields a client may supply when creating a task."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=200)
    description: str = Field(default="", max_length=2000)
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: datetime | None = None

    _due_date_utc = field_validator("due_date")(_as_utc)


class TaskUpdate(CamelModel):
    """
    Partial update. Only fields present in the request are applied.

    Identity fields (id, owner, timestamps) are not part of the model, so
    sending them is rejected as an unknown field.
    """

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    due_date: datetime | None = None

    _due_date_utc = field_validator("due_date")(_as_utc)

    @model_validator(mode="after")
    def _reject_nulls(self) -> TaskUpdate:
        for name in ("title", "status", "priority"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{to_camel(name)} cannot be null")
        return self

    def changes(self) -> dict:
        """Supplied fields, keyed by stored attribute name."""
        data = self.model_dump(exclude_unset=True)
        if "description" in data and data["description"] is None:
            data["description"] = ""
        return data
