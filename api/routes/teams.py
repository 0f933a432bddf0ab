"""
Team and membership routes.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session

from api.deps import get_current_user, require_team_access, require_team_creator
from app import task_service, team_service
from app.db import get_db
from app.models import TaskStatus, User
from schemas.team import MemberAdd, TeamCreate, TeamUpdate

router = APIRouter(tags=["Teams"])


@router.post("/teamCreate", status_code=201)
def create_team(
    payload: TeamCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    team = team_service.create_team(db, payload.name, payload.description, user.id)
    return {"message": "Team created successfully", "team": team.to_dict()}


@router.get("/teams")
def list_teams(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Teams the current user belongs to."""
    teams = team_service.list_user_teams(db, user.id)
    return {
        "message": "Teams retrieved successfully",
        "teams": [t.to_dict() for t in teams],
    }


@router.get("/teams/{team_id}")
def get_team(
    team_id: int = Path(..., ge=1),
    _: User = Depends(require_team_access),
    db: Session = Depends(get_db),
):
    return {
        "message": "Team retrieved successfully",
        "team": team_service.get_team_detail(db, team_id),
    }


@router.put("/teams/{team_id}")
def update_team(
    payload: TeamUpdate,
    team_id: int = Path(..., ge=1),
    _: User = Depends(require_team_creator("update team")),
    db: Session = Depends(get_db),
):
    kwargs = {"name": payload.name}
    if "description" in payload.model_fields_set:
        kwargs["description"] = payload.description
    team = team_service.update_team(db, team_id, **kwargs)
    return {"message": "Team updated successfully", "team": team.to_dict()}


@router.delete("/teams/{team_id}")
def delete_team(
    team_id: int = Path(..., ge=1),
    _: User = Depends(require_team_creator("delete team")),
    db: Session = Depends(get_db),
):
    team_service.delete_team(db, team_id)
    return {"message": "Team deleted successfully"}


@router.get("/teams/{team_id}/members")
def list_members(
    team_id: int = Path(..., ge=1),
    _: User = Depends(require_team_access),
    db: Session = Depends(get_db),
):
    return {
        "message": "Members retrieved successfully",
        "members": team_service.get_members(db, team_id),
    }


@router.post("/teams/{team_id}/members", status_code=201)
def add_member(
    payload: MemberAdd,
    team_id: int = Path(..., ge=1),
    _: User = Depends(require_team_access),
    db: Session = Depends(get_db),
):
    membership = team_service.add_member(db, team_id, payload.userId)
    return {"message": "Member added successfully", "membership": membership.to_dict()}


@router.delete("/teams/{team_id}/members/{user_id}")
def remove_member(
    team_id: int = Path(..., ge=1),
    user_id: int = Path(..., ge=1),
    user: User = Depends(require_team_access),
    db: Session = Depends(get_db),
):
    """The creator may remove any other member; members may remove themselves."""
    team_service.remove_member(db, user, team_id, user_id)
    return {"message": "Member removed successfully"}


@router.get("/teams/{team_id}/tasks")
def list_team_tasks(
    team_id: int = Path(..., ge=1),
    status: Optional[TaskStatus] = Query(None),
    assigned_to: Optional[int] = Query(None, ge=1),
    search: Optional[str] = Query(None, max_length=100),
    _: User = Depends(require_team_access),
    db: Session = Depends(get_db),
):
    tasks = task_service.list_team_tasks(db, team_id, status, assigned_to, search)
    return {
        "message": "Team tasks retrieved successfully",
        "tasks": [t.to_dict() for t in tasks],
    }


@router.get("/teams/{team_id}/statistics")
def team_statistics(
    team_id: int = Path(..., ge=1),
    _: User = Depends(require_team_access),
    db: Session = Depends(get_db),
):
    return {
        "message": "Team statistics retrieved successfully",
        "statistics": team_service.get_statistics(db, team_id),
    }
