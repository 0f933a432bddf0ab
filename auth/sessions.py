"""
Database-backed session store.

Sessions are rows in the ``session`` table keyed by an opaque random id.
The id is the only thing the client holds (in an HttpOnly cookie); the
payload never leaves the server. Expiry slides forward on every successful
lookup.
"""
import secrets
from datetime import timedelta
from typing import Optional

from sqlalchemy.orm import Session

from app.config import settings
from app.logger import get_logger
from app.models import SessionRecord, utcnow

logger = get_logger(__name__)


def _ttl() -> timedelta:
    return timedelta(seconds=settings.session_ttl_seconds)


def new_session_id() -> str:
    return secrets.token_urlsafe(32)


def create_session(db: Session, user_id: int) -> SessionRecord:
    """Persist a new session bound to ``user_id`` and return it."""
    now = utcnow()
    record = SessionRecord(
        sid=new_session_id(),
        sess={"user_id": user_id, "created_at": now.isoformat()},
        expire=now + _ttl(),
    )
    db.add(record)
    db.commit()
    logger.debug(f"Session created for user {user_id}")
    return record


def get_session(db: Session, sid: Optional[str], touch: bool = True) -> Optional[SessionRecord]:
    """
    Return the live session for ``sid`` or None.

    Expired rows are deleted on sight. With ``touch`` the expiry is pushed
    forward by the configured TTL.
    """
    if not sid:
        return None
    record = db.get(SessionRecord, sid)
    if record is None:
        return None

    now = utcnow()
    if record.expire <= now:
        db.delete(record)
        db.commit()
        logger.debug("Expired session discarded")
        return None

    if touch:
        record.expire = now + _ttl()
        db.commit()
    return record


def destroy_session(db: Session, sid: Optional[str]) -> bool:
    """Delete the session row. Returns False when there was nothing to delete."""
    if not sid:
        return False
    deleted = db.query(SessionRecord).filter(SessionRecord.sid == sid).delete(
        synchronize_session=False
    )
    db.commit()
    return deleted > 0


def purge_expired_sessions(db: Session) -> int:
    deleted = db.query(SessionRecord).filter(SessionRecord.expire <= utcnow()).delete(
        synchronize_session=False
    )
    db.commit()
    if deleted:
        logger.info(f"Purged {deleted} expired session(s)")
    return deleted
