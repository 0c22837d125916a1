"""
api/routes/v1/tasks.py -- Task routes for the Taskboard REST API.

Routes:
  POST   /api/v1/tasks                  -- create a task for the current user
  GET    /api/v1/tasks                  -- list the current user's tasks (cached)
  PUT    /api/v1/tasks/{task_id}        -- partial update of an owned task
  DELETE /api/v1/tasks/{task_id}        -- delete an owned task
  GET    /api/v1/tasks/admin/all        -- every task with owner info (admin only)
  DELETE /api/v1/tasks/admin/{task_id}  -- delete any task (admin only)

Every route requires authentication via the router-level dependency. The
handlers stay thin: caching and ownership rules live in tasks/service.py.
"""

from fastapi import APIRouter, Depends, Request

from api.models import (
    AdminTaskResponse,
    RowId,
    TaskCreate,
    TaskMessageResponse,
    TaskResponse,
    TaskUpdate,
)
from auth.dependencies import get_current_identity, require_role
from auth.models import ROLE_ADMIN, Identity
from tasks.service import TaskService

# Router-level dependency applies to every route registered on this router.
# FastAPI caches get_current_identity per request, so handlers that also
# depend on it (directly or through require_role) verify the token once.
router = APIRouter(prefix="/tasks", dependencies=[Depends(get_current_identity)])


def _service(request: Request) -> TaskService:
    return request.app.state.task_service


# ---------------------------------------------------------------------------
# Owner routes
# ---------------------------------------------------------------------------


@router.post("", response_model=TaskResponse, status_code=201)
def create_task(
    request: Request,
    body: TaskCreate,
    identity: Identity = Depends(get_current_identity),
) -> TaskResponse:
    """Create a task owned by the caller. status defaults to pending."""
    task = _service(request).create_task(
        identity.user_id,
        title=body.title,
        description=body.description,
        status=body.status.value if body.status else None,
    )
    return TaskResponse.from_task(task)


@router.get("", response_model=list[TaskResponse])
def list_tasks(request: Request, identity: Identity = Depends(get_current_identity)) -> list[TaskResponse]:
    """Return the caller's tasks. May be served from a snapshot up to the cache TTL old."""
    return [TaskResponse.from_task(t) for t in _service(request).list_tasks(identity.user_id)]


# ---------------------------------------------------------------------------
# Admin routes
#
# Registered before /{task_id} so the literal "admin" segment is never
# captured as a task id.
# ---------------------------------------------------------------------------


@router.get("/admin/all", response_model=list[AdminTaskResponse])
def list_all_tasks(
    request: Request,
    identity: Identity = Depends(require_role(ROLE_ADMIN)),
) -> list[AdminTaskResponse]:
    """Every task in the system with owner info. Admin only, never cached."""
    return [AdminTaskResponse.from_task(t) for t in _service(request).list_all_tasks()]


@router.delete("/admin/{task_id}", response_model=TaskMessageResponse)
def delete_any_task(
    request: Request,
    task_id: RowId,
    identity: Identity = Depends(require_role(ROLE_ADMIN)),
) -> TaskMessageResponse:
    """Delete any task regardless of owner. Admin only."""
    task = _service(request).delete_any_task(task_id)
    return TaskMessageResponse(message="Task deleted successfully", task=TaskResponse.from_task(task))


# ---------------------------------------------------------------------------
# Owner routes with a task id
# ---------------------------------------------------------------------------


@router.put("/{task_id}", response_model=TaskResponse)
def update_task(
    request: Request,
    task_id: RowId,
    body: TaskUpdate,
    identity: Identity = Depends(get_current_identity),
) -> TaskResponse:
    """Change only the fields sent. 404 if the task is absent or not the caller's."""
    fields = body.model_dump(exclude_none=True, mode="json")
    task = _service(request).update_task(identity.user_id, task_id, **fields)
    return TaskResponse.from_task(task)


@router.delete("/{task_id}", response_model=TaskMessageResponse)
def delete_task(
    request: Request,
    task_id: RowId,
    identity: Identity = Depends(get_current_identity),
) -> TaskMessageResponse:
    """Delete one of the caller's tasks. 404 if absent or not the caller's."""
    task = _service(request).delete_task(identity.user_id, task_id)
    return TaskMessageResponse(message="Task deleted successfully", task=TaskResponse.from_task(task))
