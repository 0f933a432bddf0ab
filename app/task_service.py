"""
Task operations.

Assignment writes re-check that the assignee belongs to the task's team in
the same transaction as the write, with the assignee's membership row
locked, so a concurrent removal from the team cannot slip in between.
"""
from typing import List, Optional

from sqlalchemy import String, func, or_, select
from sqlalchemy.orm import Query, Session, joinedload

from app.errors import NotFound, ValidationError
from app.logger import get_logger
from app.models import Membership, Task, TaskStatus
from app.team_service import clean_optional

logger = get_logger(__name__)

_UNSET = object()


def _task_query(db: Session) -> Query:
    return db.query(Task).options(joinedload(Task.team), joinedload(Task.assignee))


def _newest_first(query: Query) -> Query:
    return query.order_by(Task.created_at.desc(), Task.id.desc())


def _matching(term: str):
    needle = term.strip().lower()
    return or_(
        func.lower(Task.title, type_=String).contains(needle, autoescape=True),
        func.lower(Task.description, type_=String).contains(needle, autoescape=True),
    )


def _apply_filters(
    query: Query,
    status: Optional[TaskStatus] = None,
    team_id: Optional[int] = None,
    assigned_to: Optional[int] = None,
    search: Optional[str] = None,
) -> Query:
    if status is not None:
        query = query.filter(Task.status == status)
    if team_id is not None:
        query = query.filter(Task.team_id == team_id)
    if assigned_to is not None:
        query = query.filter(Task.assigned_to == assigned_to)
    if search and search.strip():
        query = query.filter(_matching(search))
    return query


def _lock_assignee_membership(db: Session, user_id: int, team_id: int, message: str) -> None:
    membership = db.query(Membership).filter(
        Membership.user_id == user_id,
        Membership.team_id == team_id,
    ).with_for_update().first()
    if membership is None:
        raise ValidationError(message)


def create_task(
    db: Session,
    title: str,
    description: Optional[str],
    team_id: int,
    assigned_to: Optional[int] = None,
) -> Task:
    """
    Create a PENDING task in ``team_id``.

    The caller's own membership is checked by the route guard; here only the
    assignee is validated.
    """
    try:
        if assigned_to:
            _lock_assignee_membership(
                db, assigned_to, team_id, "Assigned user is not a member of this team"
            )
        task = Task(
            title=title.strip(),
            description=clean_optional(description),
            team_id=team_id,
            assigned_to=assigned_to or None,
            status=TaskStatus.PENDING,
        )
        db.add(task)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"📌 Task {task.id} created in team {team_id}")
    return get_task(db, task.id)


def get_task(db: Session, task_id: int) -> Task:
    task = _task_query(db).filter(Task.id == task_id).first()
    if task is None:
        raise NotFound("Task not found")
    return task


def update_task(
    db: Session,
    task_id: int,
    title: Optional[str] = None,
    description=_UNSET,
    status: Optional[TaskStatus] = None,
    assigned_to=_UNSET,
) -> Task:
    """Partial update; only the given fields change."""
    try:
        task = db.query(Task).filter(Task.id == task_id).first()
        if task is None:
            raise NotFound("Task not found")

        if title:
            task.title = title.strip()
        if description is not _UNSET:
            task.description = clean_optional(description)
        if status is not None:
            task.status = status
        if assigned_to is not _UNSET:
            if assigned_to:
                _lock_assignee_membership(
                    db, assigned_to, task.team_id, "Assigned user is not a member of this team"
                )
            task.assigned_to = assigned_to or None
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.expire(task)
    return get_task(db, task_id)


def assign_task(db: Session, task_id: int, user_id: int) -> Task:
    try:
        task = db.query(Task).filter(Task.id == task_id).first()
        if task is None:
            raise NotFound("Task not found")
        _lock_assignee_membership(db, user_id, task.team_id, "User is not a member of this team")
        task.assigned_to = user_id
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"Task {task_id} assigned to user {user_id}")
    db.expire(task)
    return get_task(db, task_id)


def unassign_task(db: Session, task_id: int) -> Task:
    return update_task(db, task_id, assigned_to=None)


def mark_completed(db: Session, task_id: int) -> Task:
    return update_task(db, task_id, status=TaskStatus.COMPLETED)


def mark_pending(db: Session, task_id: int) -> Task:
    return update_task(db, task_id, status=TaskStatus.PENDING)


def delete_task(db: Session, task_id: int) -> None:
    deleted = db.query(Task).filter(Task.id == task_id).delete(synchronize_session=False)
    db.commit()
    if not deleted:
        raise NotFound("Task not found")
    logger.info(f"Task {task_id} deleted")


def list_tasks_for_user_teams(
    db: Session,
    user_id: int,
    status: Optional[TaskStatus] = None,
    team_id: Optional[int] = None,
    assigned_to: Optional[int] = None,
    search: Optional[str] = None,
) -> List[Task]:
    """Tasks of every team the user belongs to."""
    own_teams = select(Membership.team_id).where(Membership.user_id == user_id)
    query = _task_query(db).filter(Task.team_id.in_(own_teams))
    query = _apply_filters(query, status, team_id, assigned_to, search)
    return _newest_first(query).all()


def list_team_tasks(
    db: Session,
    team_id: int,
    status: Optional[TaskStatus] = None,
    assigned_to: Optional[int] = None,
    search: Optional[str] = None,
) -> List[Task]:
    query = _apply_filters(_task_query(db), status, team_id, assigned_to, search)
    return _newest_first(query).all()


def list_assigned_tasks(
    db: Session,
    user_id: int,
    status: Optional[TaskStatus] = None,
    team_id: Optional[int] = None,
    viewer_id: Optional[int] = None,
) -> List[Task]:
    """
    Tasks assigned to ``user_id``.

    With ``viewer_id`` only tasks of teams the viewer belongs to are returned.
    """
    query = _apply_filters(_task_query(db), status, team_id, assigned_to=user_id)
    if viewer_id is not None and viewer_id != user_id:
        viewer_teams = select(Membership.team_id).where(Membership.user_id == viewer_id)
        query = query.filter(Task.team_id.in_(viewer_teams))
    return _newest_first(query).all()


def search_tasks(
    db: Session,
    term: str,
    team_id: Optional[int] = None,
    user_id: Optional[int] = None,
    status: Optional[TaskStatus] = None,
) -> List[Task]:
    """
    Case-insensitive substring search over title and description.

    ``user_id`` restricts the search to the teams that user belongs to.
    """
    if not term or not term.strip():
        raise ValidationError("Search query is required")

    query = _task_query(db).filter(_matching(term))
    if user_id is not None:
        own_teams = select(Membership.team_id).where(Membership.user_id == user_id)
        query = query.filter(Task.team_id.in_(own_teams))
    query = _apply_filters(query, status=status, team_id=team_id)
    return _newest_first(query).all()
