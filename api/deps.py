"""
FastAPI dependencies for authentication and route guards.

Guards run before the route body, so a denied request never reaches a
service call that writes.
"""
from typing import Callable, Optional

from fastapi import Depends, Path, Request, Response
from sqlalchemy.orm import Session

from app import access, auth_service
from app.access import ResourceKind
from app.config import settings
from app.db import get_db
from app.errors import ValidationError
from app.models import User


def get_session_id(request: Request) -> Optional[str]:
    return request.cookies.get(settings.session_cookie_name)


def set_session_cookie(response: Response, sid: str) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=sid,
        max_age=settings.session_ttl_seconds,
        httponly=True,
        secure=settings.cookie_secure,
        samesite=settings.cookie_samesite,
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.session_cookie_name,
        httponly=True,
        secure=settings.cookie_secure,
        samesite=settings.cookie_samesite,
    )


def get_current_user(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
) -> User:
    """Resolve the session cookie to a user and roll the cookie forward."""
    sid = get_session_id(request)
    user = auth_service.resolve_user(db, sid)
    set_session_cookie(response, sid)
    return user


def _parse_id(raw, kind: ResourceKind) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        value = 0
    if value < 1:
        raise ValidationError(f"Valid {kind.value} ID is required")
    return value


def require_ownership(kind: ResourceKind, param: str) -> Callable[..., User]:
    """
    Build a guard that checks the principal against the resource named by
    the ``param`` path parameter.
    """
    def guard(
        request: Request,
        user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
    ) -> User:
        resource_id = _parse_id(request.path_params.get(param), kind)
        access.ensure_access(db, user, kind, resource_id)
        return user

    return guard


require_team_access = require_ownership(ResourceKind.TEAM, "team_id")
require_task_access = require_ownership(ResourceKind.TASK, "task_id")
require_self = require_ownership(ResourceKind.USER, "user_id")


def require_team_creator(action: str) -> Callable[..., User]:
    """Guard for operations reserved to the team's creator."""
    def guard(
        team_id: int = Path(..., ge=1),
        user: User = Depends(require_team_access),
        db: Session = Depends(get_db),
    ) -> User:
        access.ensure_team_creator(db, user, team_id, action)
        return user

    return guard
