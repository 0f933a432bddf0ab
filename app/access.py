"""
Authorization decisions.

Every check answers "may this principal act on that resource" from the
membership graph: team access is a membership row, task access is a
membership in the task's team, and creator rights come from
``teams.creator_id``. The ``ensure_*`` helpers raise ``Forbidden`` so route
guards can fail before any handler code runs.
"""
import enum
from typing import Callable, Dict

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.errors import Forbidden, NotFound
from app.logger import get_logger
from app.models import Membership, Task, Team, User

logger = get_logger(__name__)


class ResourceKind(str, enum.Enum):
    USER = "user"
    TEAM = "team"
    TASK = "task"


def is_team_member(db: Session, user_id: int, team_id: int) -> bool:
    return db.query(Membership.id).filter(
        Membership.user_id == user_id,
        Membership.team_id == team_id,
    ).first() is not None


def can_access_task(db: Session, user_id: int, task_id: int) -> bool:
    return db.query(Task.id).join(
        Membership, Membership.team_id == Task.team_id
    ).filter(
        Task.id == task_id,
        Membership.user_id == user_id,
    ).first() is not None


def is_team_creator(db: Session, user_id: int, team_id: int) -> bool:
    creator_id = db.query(Team.creator_id).filter(Team.id == team_id).scalar()
    return creator_id is not None and creator_id == user_id


def shares_team(db: Session, user_id: int, other_user_id: int) -> bool:
    """True when both users belong to at least one common team."""
    if user_id == other_user_id:
        return True
    own_teams = select(Membership.team_id).where(Membership.user_id == user_id)
    return db.query(Membership.id).filter(
        Membership.user_id == other_user_id,
        Membership.team_id.in_(own_teams),
    ).first() is not None


def _owns_user(db: Session, user: User, resource_id: int) -> bool:
    return user.id == resource_id


def _owns_team(db: Session, user: User, resource_id: int) -> bool:
    return is_team_member(db, user.id, resource_id)


def _owns_task(db: Session, user: User, resource_id: int) -> bool:
    return can_access_task(db, user.id, resource_id)


OWNERSHIP_CHECKS: Dict[ResourceKind, Callable[[Session, User, int], bool]] = {
    ResourceKind.USER: _owns_user,
    ResourceKind.TEAM: _owns_team,
    ResourceKind.TASK: _owns_task,
}

DENIED_MESSAGES = {
    ResourceKind.USER: "You do not have permission to access this resource",
    ResourceKind.TEAM: "You are not a member of this team",
    ResourceKind.TASK: "You do not have access to this task",
}


def has_access(db: Session, user: User, kind: ResourceKind, resource_id: int) -> bool:
    return OWNERSHIP_CHECKS[kind](db, user, resource_id)


def ensure_access(db: Session, user: User, kind: ResourceKind, resource_id: int) -> None:
    if not has_access(db, user, kind, resource_id):
        logger.info(f"Denied {kind.value} {resource_id} to user {user.id}")
        raise Forbidden(DENIED_MESSAGES[kind])


def ensure_team_creator(db: Session, user: User, team_id: int, action: str) -> Team:
    team = db.get(Team, team_id)
    if team is None:
        raise NotFound("Team not found")
    if team.creator_id != user.id:
        raise Forbidden(f"Only team creator can {action}")
    return team


def ensure_can_remove_member(db: Session, user: User, team_id: int, member_id: int) -> None:
    """The creator may remove anyone; everybody else may only remove themselves."""
    if user.id == member_id:
        return
    if not is_team_creator(db, user.id, team_id):
        raise Forbidden("Only team creator or the user themselves can remove membership")
