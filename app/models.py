"""
SQLAlchemy models for the team task backend.
Matches the relational schema with users, teams, memberships, tasks and session tables.
"""
import enum
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp; SQLite drops tzinfo so all stored times are naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _iso(value):
    return value.isoformat() if value else None


class TaskStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"


class User(Base):
    """
    Registered user. The password column holds a bcrypt hash and is never serialized.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(50), nullable=False, unique=True)
    email = Column(String(255), nullable=False, unique=True)
    password = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username={self.username})>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
        }


class Team(Base):
    """
    Collaborative group. The creator is stored explicitly and always holds a membership.
    """
    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    creator_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    creator = relationship("User")
    memberships = relationship(
        "Membership",
        back_populates="team",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    tasks = relationship(
        "Task",
        back_populates="team",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Team(id={self.id}, name={self.name})>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "creator_id": self.creator_id,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class Membership(Base):
    """
    Join fact that a user belongs to a team.
    """
    __tablename__ = "memberships"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False
    )
    team_id = Column(
        Integer,
        ForeignKey("teams.id", ondelete="CASCADE"),
        nullable=False
    )
    created_at = Column(DateTime, default=utcnow, nullable=False)

    user = relationship("User")
    team = relationship("Team", back_populates="memberships")

    __table_args__ = (
        UniqueConstraint("user_id", "team_id", name="uq_memberships_user_team"),
        Index("ix_memberships_team", "team_id"),
    )

    def __repr__(self) -> str:
        return f"<Membership(user_id={self.user_id}, team_id={self.team_id})>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "team_id": self.team_id,
            "joined_at": _iso(self.created_at),
        }


class Task(Base):
    """
    Unit of work owned by a team, optionally assigned to one of its members.
    """
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(
        Enum(TaskStatus, name="task_status"),
        nullable=False,
        default=TaskStatus.PENDING
    )
    team_id = Column(
        Integer,
        ForeignKey("teams.id", ondelete="CASCADE"),
        nullable=False
    )
    assigned_to = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    team = relationship("Team", back_populates="tasks")
    assignee = relationship("User")

    __table_args__ = (
        Index("ix_tasks_team", "team_id"),
        Index("ix_tasks_assigned_to", "assigned_to"),
    )

    def __repr__(self) -> str:
        return f"<Task(id={self.id}, team_id={self.team_id}, status={self.status})>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status.value if self.status else None,
            "team_id": self.team_id,
            "team_name": self.team.name if self.team else None,
            "assigned_to": self.assigned_to,
            "assigned_to_username": self.assignee.username if self.assignee else None,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class SessionRecord(Base):
    """
    Server-side session: opaque id -> session payload with a sliding expiry.
    """
    __tablename__ = "session"

    sid = Column(String(128), primary_key=True)
    sess = Column(JSON, nullable=False)
    expire = Column(DateTime, nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<SessionRecord(expire={self.expire})>"

    @property
    def user_id(self):
        return (self.sess or {}).get("user_id")
