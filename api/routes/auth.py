from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from api.deps import (
    clear_session_cookie,
    get_current_user,
    get_session_id,
    require_self,
    set_session_cookie,
)
from app import auth_service
from app.db import get_db
from app.errors import NotFound
from app.models import User
from schemas.auth import UserCreate, UserLogin

router = APIRouter(tags=["Auth"])


@router.post("/authRegister", status_code=201)
def register(payload: UserCreate, db: Session = Depends(get_db)):
    user = auth_service.register(db, payload.username, payload.email, payload.password)
    return {"message": "Registration successful", "user": user}


@router.post("/login")
def login(
    payload: UserLogin,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
):
    user, sid = auth_service.login(db, payload.email, payload.password, get_session_id(request))
    set_session_cookie(response, sid)
    return {"message": "Login successful", "user": user}


@router.post("/logout")
def logout(request: Request, response: Response, db: Session = Depends(get_db)):
    """Destroy the current session. Safe to call when already logged out."""
    auth_service.logout(db, get_session_id(request))
    clear_session_cookie(response)
    return {"message": "Logout successful"}


@router.get("/me")
def current_user(user: User = Depends(get_current_user)):
    """Current principal; clients use it to revalidate their cached user."""
    return {"user": user.to_dict()}


@router.get("/users/{user_id}")
def get_user(user_id: int, _: User = Depends(require_self), db: Session = Depends(get_db)):
    user = db.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return {"user": user.to_dict()}
