"""
Authentication service: registration, login, logout and session resolution.
"""
from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.errors import Conflict, Unauthorized, integrity_kind
from app.logger import get_logger
from app.models import User
from auth import sessions
from auth.security import hash_password, verify_password

logger = get_logger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def find_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == normalize_email(email)).first()


def register(db: Session, username: str, email: str, password: str) -> dict:
    """
    Create a user and return its public projection.

    Raises Conflict when the username or the email is already taken.
    """
    username = username.strip()
    email = normalize_email(email)

    if db.query(User.id).filter(User.username == username).first():
        raise Conflict("Username already exists")
    if db.query(User.id).filter(User.email == email).first():
        raise Conflict("Email already exists")

    user = User(username=username, email=email, password=hash_password(password))
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        # Lost a race with a concurrent registration
        db.rollback()
        if integrity_kind(exc) == "unique":
            field = "Email" if "email" in str(exc.orig).lower() else "Username"
            raise Conflict(f"{field} already exists") from exc
        raise

    logger.info(f"✅ Registered user {user.username} ({user.email})")
    return user.to_dict()


def login(
    db: Session,
    email: str,
    password: str,
    current_sid: Optional[str] = None,
) -> Tuple[dict, str]:
    """
    Verify credentials and open a new session.

    Any session the caller already carried is destroyed first. Returns the
    public user projection and the new session id.
    """
    user = find_user_by_email(db, email)
    if user is None or not verify_password(password, user.password):
        logger.info(f"Login failed for {normalize_email(email)}")
        raise Unauthorized("Invalid email or password")

    if current_sid:
        sessions.destroy_session(db, current_sid)

    record = sessions.create_session(db, user.id)
    logger.info(f"🔑 User logged in: {user.username} ({user.email})")
    return user.to_dict(), record.sid


def logout(db: Session, sid: Optional[str]) -> None:
    """Invalidate the session. Calling it without a live session is not an error."""
    record = sessions.get_session(db, sid, touch=False)
    user_id = record.user_id if record else None
    sessions.destroy_session(db, sid)
    if user_id is not None:
        logger.info(f"User {user_id} logged out")


def resolve_user(db: Session, sid: Optional[str]) -> User:
    """Map a session id onto its user, sliding the session expiry."""
    record = sessions.get_session(db, sid)
    if record is None:
        raise Unauthorized("You must be logged in to access this resource")

    user = db.get(User, record.user_id) if record.user_id is not None else None
    if user is None:
        sessions.destroy_session(db, sid)
        raise Unauthorized("You must be logged in to access this resource")
    return user
