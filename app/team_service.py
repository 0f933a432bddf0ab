"""
Team and membership operations.
"""
from typing import List, Optional

from sqlalchemy import case, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app import access
from app.errors import NotFound, ValidationError, translate_integrity_error
from app.logger import get_logger
from app.models import Membership, Task, TaskStatus, Team, User

logger = get_logger(__name__)

_UNSET = object()


def clean_optional(value: Optional[str]) -> Optional[str]:
    """Trim a free-text field; blank becomes None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def _percent(part: int, total: int) -> int:
    return int(part / total * 100 + 0.5) if total > 0 else 0


def create_team(db: Session, name: str, description: Optional[str], creator_id: int) -> Team:
    """
    Create a team together with its creator's membership.

    Both rows are written in one transaction; on any failure neither persists.
    """
    team = Team(name=name.strip(), description=clean_optional(description), creator_id=creator_id)
    try:
        db.add(team)
        db.flush()
        db.add(Membership(user_id=creator_id, team_id=team.id))
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise translate_integrity_error(exc, "Team name already exists") from exc
    except Exception:
        db.rollback()
        raise

    logger.info(f"👥 Team '{team.name}' ({team.id}) created by user {creator_id}")
    return team


def get_team(db: Session, team_id: int) -> Team:
    team = db.get(Team, team_id)
    if team is None:
        raise NotFound("Team not found")
    return team


def list_user_teams(db: Session, user_id: int) -> List[Team]:
    return db.query(Team).join(
        Membership, Membership.team_id == Team.id
    ).filter(
        Membership.user_id == user_id
    ).order_by(Team.created_at.desc(), Team.id.desc()).all()


def update_team(db: Session, team_id: int, name: Optional[str] = None, description=_UNSET) -> Team:
    team = get_team(db, team_id)
    if name:
        team.name = name.strip()
    if description is not _UNSET:
        team.description = clean_optional(description)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise translate_integrity_error(exc, "Team name already exists") from exc
    logger.info(f"Team {team_id} updated")
    return team


def delete_team(db: Session, team_id: int) -> None:
    """Delete a team; tasks and memberships go with it through ON DELETE CASCADE."""
    deleted = db.query(Team).filter(Team.id == team_id).delete(synchronize_session=False)
    db.commit()
    if not deleted:
        raise NotFound("Team not found")
    db.expire_all()
    logger.info(f"🗑️ Team {team_id} deleted")


def get_members(db: Session, team_id: int) -> List[dict]:
    """Members ordered by join time; the first entry is the creator."""
    rows = db.query(User, Membership.created_at).join(
        Membership, Membership.user_id == User.id
    ).filter(
        Membership.team_id == team_id
    ).order_by(Membership.created_at.asc(), Membership.id.asc()).all()
    return [
        {**user.to_dict(), "joined_at": joined_at.isoformat() if joined_at else None}
        for user, joined_at in rows
    ]


def member_count(db: Session, team_id: int) -> int:
    return db.query(func.count(Membership.id)).filter(Membership.team_id == team_id).scalar() or 0


def add_member(db: Session, team_id: int, user_id: int) -> Membership:
    """
    Add a user to a team.

    Raises Conflict for an existing membership and InvalidReference when the
    user or team does not exist.
    """
    membership = Membership(user_id=user_id, team_id=team_id)
    db.add(membership)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise translate_integrity_error(exc, "User is already a member of this team") from exc

    logger.info(f"User {user_id} added to team {team_id}")
    return membership


def remove_member(db: Session, actor: User, team_id: int, user_id: int) -> None:
    """
    Remove ``user_id`` from the team on behalf of ``actor``.

    The team row is locked for the whole check-and-delete so concurrent
    removals cannot both pass the last-member check.
    """
    try:
        team = db.query(Team).filter(Team.id == team_id).with_for_update().first()
        if team is None:
            raise NotFound("Team not found")
        if user_id == team.creator_id:
            raise ValidationError("Cannot remove team creator")

        access.ensure_can_remove_member(db, actor, team_id, user_id)

        membership = db.query(Membership).filter(
            Membership.team_id == team_id,
            Membership.user_id == user_id,
        ).first()
        if membership is None:
            raise NotFound("Membership not found")
        if member_count(db, team_id) <= 1:
            raise ValidationError("Cannot remove the last member from a team")

        db.delete(membership)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"User {user_id} removed from team {team_id} by user {actor.id}")


def get_statistics(db: Session, team_id: int) -> dict:
    row = db.query(
        func.count(Task.id),
        func.count(case((Task.status == TaskStatus.PENDING, 1))),
        func.count(case((Task.status == TaskStatus.COMPLETED, 1))),
        func.count(Task.assigned_to),
    ).filter(Task.team_id == team_id).one()

    total, pending, completed, assigned = (int(v or 0) for v in row)
    return {
        "member_count": member_count(db, team_id),
        "total_tasks": total,
        "pending_tasks": pending,
        "completed_tasks": completed,
        "assigned_tasks": assigned,
        "unassigned_tasks": total - assigned,
        "completion_rate": _percent(completed, total),
        "assignment_rate": _percent(assigned, total),
    }


def get_team_detail(db: Session, team_id: int) -> dict:
    team = get_team(db, team_id)
    stats = get_statistics(db, team_id)
    return {
        **team.to_dict(),
        "member_count": stats["member_count"],
        "total_tasks": stats["total_tasks"],
        "pending_tasks": stats["pending_tasks"],
        "completed_tasks": stats["completed_tasks"],
        "completion_rate": stats["completion_rate"],
        "members": get_members(db, team_id),
    }
