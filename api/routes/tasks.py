"""
Task routes.

Static paths (my-tasks, search, team/..., user/...) are registered before
``/tasks/{task_id}`` so they are not captured by it.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session

from api.deps import get_current_user, require_task_access, require_team_access
from app import access, task_service
from app.access import ResourceKind
from app.db import get_db
from app.errors import Forbidden
from app.models import TaskStatus, User
from schemas.task import TaskAssign, TaskCreate, TaskUpdate

router = APIRouter(prefix="/tasks", tags=["Tasks"])


def _task_list(message: str, tasks, **extra) -> dict:
    return {"message": message, "tasks": [t.to_dict() for t in tasks], **extra}


@router.post("", status_code=201)
def create_task(
    payload: TaskCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    access.ensure_access(db, user, ResourceKind.TEAM, payload.team_id)
    task = task_service.create_task(
        db,
        payload.title,
        payload.description,
        payload.team_id,
        payload.assigned_to,
    )
    return {"message": "Task created successfully", "task": task.to_dict()}


@router.get("")
def list_tasks(
    status: Optional[TaskStatus] = Query(None),
    team_id: Optional[int] = Query(None, ge=1),
    assigned_to: Optional[int] = Query(None, ge=1),
    search: Optional[str] = Query(None, max_length=100),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Tasks across all of the current user's teams."""
    tasks = task_service.list_tasks_for_user_teams(
        db, user.id, status=status, team_id=team_id, assigned_to=assigned_to, search=search
    )
    return _task_list("Tasks retrieved successfully", tasks)


@router.get("/my-tasks")
def my_tasks(
    status: Optional[TaskStatus] = Query(None),
    team_id: Optional[int] = Query(None, ge=1),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    tasks = task_service.list_assigned_tasks(db, user.id, status=status, team_id=team_id)
    return _task_list("Your tasks retrieved successfully", tasks)


@router.get("/search")
def search_tasks(
    q: str = Query(..., min_length=1, max_length=100),
    team_id: Optional[int] = Query(None, ge=1),
    status: Optional[TaskStatus] = Query(None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    tasks = task_service.search_tasks(db, q, team_id=team_id, user_id=user.id, status=status)
    return _task_list("Search results retrieved successfully", tasks, query=q)


@router.get("/team/{team_id}")
def tasks_by_team(
    team_id: int = Path(..., ge=1),
    status: Optional[TaskStatus] = Query(None),
    assigned_to: Optional[int] = Query(None, ge=1),
    _: User = Depends(require_team_access),
    db: Session = Depends(get_db),
):
    tasks = task_service.list_team_tasks(db, team_id, status=status, assigned_to=assigned_to)
    return _task_list("Team tasks retrieved successfully", tasks)


@router.get("/user/{user_id}")
def tasks_by_user(
    user_id: int = Path(..., ge=1),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not access.shares_team(db, user.id, user_id):
        raise Forbidden("You can only view tasks of team members")
    tasks = task_service.list_assigned_tasks(db, user_id, viewer_id=user.id)
    return _task_list("User tasks retrieved successfully", tasks)


@router.get("/{task_id}")
def get_task(
    task_id: int = Path(..., ge=1),
    _: User = Depends(require_task_access),
    db: Session = Depends(get_db),
):
    task = task_service.get_task(db, task_id)
    return {"message": "Task retrieved successfully", "task": task.to_dict()}


@router.put("/{task_id}")
def update_task(
    payload: TaskUpdate,
    task_id: int = Path(..., ge=1),
    _: User = Depends(require_task_access),
    db: Session = Depends(get_db),
):
    fields = payload.model_fields_set
    kwargs = {"title": payload.title, "status": payload.status}
    if "description" in fields:
        kwargs["description"] = payload.description
    if "assigned_to" in fields:
        kwargs["assigned_to"] = payload.assigned_to
    task = task_service.update_task(db, task_id, **kwargs)
    return {"message": "Task updated successfully", "task": task.to_dict()}


@router.delete("/{task_id}")
def delete_task(
    task_id: int = Path(..., ge=1),
    _: User = Depends(require_task_access),
    db: Session = Depends(get_db),
):
    task_service.delete_task(db, task_id)
    return {"message": "Task deleted successfully"}


@router.put("/{task_id}/assign")
def assign_task(
    payload: TaskAssign,
    task_id: int = Path(..., ge=1),
    _: User = Depends(require_task_access),
    db: Session = Depends(get_db),
):
    task = task_service.assign_task(db, task_id, payload.user_id)
    return {"message": "Task assigned successfully", "task": task.to_dict()}


@router.put("/{task_id}/unassign")
def unassign_task(
    task_id: int = Path(..., ge=1),
    _: User = Depends(require_task_access),
    db: Session = Depends(get_db),
):
    task = task_service.unassign_task(db, task_id)
    return {"message": "Task unassigned successfully", "task": task.to_dict()}


@router.put("/{task_id}/complete")
def complete_task(
    task_id: int = Path(..., ge=1),
    _: User = Depends(require_task_access),
    db: Session = Depends(get_db),
):
    task = task_service.mark_completed(db, task_id)
    return {"message": "Task marked as completed", "task": task.to_dict()}


@router.put("/{task_id}/pending")
def pending_task(
    task_id: int = Path(..., ge=1),
    _: User = Depends(require_task_access),
    db: Session = Depends(get_db),
):
    task = task_service.mark_pending(db, task_id)
    return {"message": "Task marked as pending", "task": task.to_dict()}
