# =============================================================================
# Task API Routes
# =============================================================================
#
# Every endpoint requires a bearer token.
#
#   POST        /tasks          - Create task owned by caller
#   GET         /tasks          - Page of caller's tasks (filter/search/sort)
#   GET         /tasks/stats    - Caller's task counts per status
#   GET         /tasks/{id}     - One task (owner or admin)
#   PUT|PATCH   /tasks/{id}     - Update task (owner or admin)
#   DELETE      /tasks/{id}     - Delete task (owner or admin)
#
# =============================================================================

from fastapi import APIRouter, Depends, Query

from taskapi.api.dependencies import get_settings_dep, get_task_service
from taskapi.api.responses import ok, paged
from taskapi.auth.context import Principal
from taskapi.auth.policies import require_auth
from taskapi.config import Settings
from taskapi.core.errors import ValidationError
from taskapi.core.models import TaskCreate, TaskUpdate
from taskapi.services import ListParams, TaskService

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.post("", status_code=201)
async def create_task(
    data: TaskCreate,
    principal: Principal = Depends(require_auth()),
    tasks: TaskService = Depends(get_task_service),
):
    """Create a task. The caller becomes its owner."""
    task = await tasks.create(principal, data)
    return ok(task.to_wire())


@router.get("")
async def list_tasks(
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
    status: str | None = None,
    priority: str | None = None,
    q: str | None = None,
    sort: str | None = None,
    principal: Principal = Depends(require_auth()),
    tasks: TaskService = Depends(get_task_service),
    settings: Settings = Depends(get_settings_dep),
):
    """
    List the caller's tasks.

    Unknown sort keys fall back to newest-first.
    """
    if limit is None:
        limit = settings.default_page_limit
    if limit > settings.max_page_limit:
        raise ValidationError(f"limit must not exceed {settings.max_page_limit}")

    params = ListParams(page=page, limit=limit, status=status, priority=priority, q=q, sort=sort)
    result = await tasks.list(principal, params)
    return paged([task.to_wire() for task in result.items], result.meta())


@router.get("/stats")
async def task_stats(
    principal: Principal = Depends(require_auth()),
    tasks: TaskService = Depends(get_task_service),
):
    """Count of the caller's tasks per status."""
    return ok(await tasks.stats(principal))


@router.get("/{task_id}")
async def get_task(
    task_id: str,
    principal: Principal = Depends(require_auth()),
    tasks: TaskService = Depends(get_task_service),
):
    task = await tasks.get(principal, task_id)
    return ok(task.to_wire())


@router.api_route("/{task_id}", methods=["PUT", "PATCH"])
async def update_task(
    task_id: str,
    data: TaskUpdate,
    principal: Principal = Depends(require_auth()),
    tasks: TaskService = Depends(get_task_service),
):
    """Apply the supplied fields. Owner and timestamps cannot be set."""
    task = await tasks.update(principal, task_id, data)
    return ok(task.to_wire())


@router.delete("/{task_id}")
async def delete_task(
    task_id: str,
    principal: Principal = Depends(require_auth()),
    tasks: TaskService = Depends(get_task_service),
):
    await tasks.delete(principal, task_id)
    return ok({"id": task_id}, message="Task deleted successfully")
