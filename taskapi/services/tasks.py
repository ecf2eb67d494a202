"""
Task service - ownership-checked task operations.

Single-task operations follow one order: validate the id, confirm the
task exists (404), check the authorization policy (403), then mutate.
A task deleted between the check and the write surfaces as 404 from
the write itself; there is no locking.

Listing and statistics are always scoped to the caller's own tasks,
admins included.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from taskapi.auth.context import Principal
from taskapi.auth.policies import Operation, enforce
from taskapi.core.errors import NotFoundError, ValidationError
from taskapi.core.models import Task, TaskCreate, TaskPriority, TaskStatus, TaskUpdate
from taskapi.core.utils import generate_id, is_valid_id, utc_now
from taskapi.storage import ASCENDING, DESCENDING, Collections, FindQuery, StorageProvider

logger = logging.getLogger(__name__)


# =============================================================================
# Sorting
# =============================================================================

# Wire sort key (without direction) -> stored field
SORT_FIELDS = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "dueDate": "due_date",
    "title": "title",
}

ALLOWED_SORTS = (
    "-createdAt", "createdAt",
    "-updatedAt", "updatedAt",
    "-dueDate", "dueDate",
    "-title", "title",
)

DEFAULT_SORT = "-createdAt"


def resolve_sort(sort: str | None) -> list[tuple[str, int]]:
    """
    Translate a client sort key into a store sort spec.

    Unknown keys fall back to newest-first. Ties break on id so pages
    never overlap.
    """
    key = sort if sort in ALLOWED_SORTS else DEFAULT_SORT
    direction = DESCENDING if key.startswith("-") else ASCENDING
    return [(SORT_FIELDS[key.lstrip("-")], direction), ("id", ASCENDING)]


# =============================================================================
# Listing
# =============================================================================


@dataclass
class ListParams:
    """Validated listing parameters."""

    page: int = 1
    limit: int = 10
    status: str | None = None
    priority: str | None = None
    q: str | None = None
    sort: str | None = None

    def __post_init__(self):
        for name in ("page", "limit"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ValidationError(f"{name} must be a positive integer")
        if self.status is not None:
            self.status = _enum_value(TaskStatus, self.status, "status")
        if self.priority is not None:
            self.priority = _enum_value(TaskPriority, self.priority, "priority")
        if self.q is not None and not self.q.strip():
            self.q = None

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


def _enum_value(enum_cls, value: str, name: str) -> str:
    try:
        return enum_cls(value).value
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"{name} must be one of: {allowed}")


@dataclass
class TaskPage:
    """One page of tasks plus the total under the same filter."""

    items: list[Task] = field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 10

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit)

    def meta(self) -> dict:
        return {"total": self.total, "page": self.page, "limit": self.limit, "pages": self.pages}


# =============================================================================
# Service
# =============================================================================


class TaskService:
    """Task operations with the authorization policy applied."""

    def __init__(self, storage: StorageProvider, clock: Callable[[], datetime] = utc_now):
        self.storage = storage
        self.clock = clock

    @property
    def _docs(self):
        return self.storage.documents

    async def _load(self, task_id: str) -> Task:
        """Existence check. Runs before any authorization decision."""
        if not is_valid_id(task_id, "task"):
            raise ValidationError("Invalid task ID")
        doc = await self._docs.get(Collections.TASKS, task_id)
        if doc is None:
            raise NotFoundError("Task not found")
        return Task.model_validate(doc)

    async def create(self, principal: Principal, data: TaskCreate) -> Task:
        """Create a task owned by the caller."""
        now = self.clock()
        task = Task(
            id=generate_id("task"),
            **data.model_dump(),
            owner=principal.id,
            created_at=now,
            updated_at=now,
        )
        await self._docs.insert(Collections.TASKS, task.id, task.model_dump())
        logger.debug(f"Task {task.id} created by {principal.id}")
        return task

    async def get(self, principal: Principal, task_id: str) -> Task:
        task = await self._load(task_id)
        enforce(principal, task, Operation.READ)
        return task

    async def update(self, principal: Principal, task_id: str, data: TaskUpdate) -> Task:
        task = await self._load(task_id)
        enforce(principal, task, Operation.UPDATE)

        changes = data.changes()
        changes["updated_at"] = self.clock()
        doc = await self._docs.update(Collections.TASKS, task.id, changes)
        if doc is None:
            raise NotFoundError("Task not found")
        return Task.model_validate(doc)

    async def delete(self, principal: Principal, task_id: str) -> None:
        task = await self._load(task_id)
        enforce(principal, task, Operation.DELETE)

        if not await self._docs.delete(Collections.TASKS, task.id):
            raise NotFoundError("Task not found")
        logger.info(f"Task {task.id} deleted by {principal.id}")

    async def list(self, principal: Principal, params: ListParams) -> TaskPage:
        """
        A page of the caller's tasks.

        The owner filter is always applied; count and page share the same
        filter so `pages` agrees with the rows returned.
        """
        filters: dict = {"owner": principal.id}
        if params.status:
            filters["status"] = params.status
        if params.priority:
            filters["priority"] = params.priority

        query = FindQuery(
            filters=filters,
            text=params.q,
            sort=resolve_sort(params.sort),
            skip=params.skip,
            limit=params.limit,
        )
        docs = await self._docs.find(Collections.TASKS, query)
        total = await self._docs.count(Collections.TASKS, filters, text=params.q)

        return TaskPage(
            items=[Task.model_validate(doc) for doc in docs],
            total=total,
            page=params.page,
            limit=params.limit,
        )

    async def stats(self, principal: Principal) -> dict[str, int]:
        """Count of the caller's tasks per status. Empty when they have none."""
        counts = await self._docs.group_count(Collections.TASKS, "status", {"owner": principal.id})
        return {str(status): count for status, count in counts.items()}
