from typing import Optional

from pydantic import BaseModel, Field, field_validator

from app.models import TaskStatus


def _check_title(value: str) -> str:
    value = value.strip()
    if not 3 <= len(value) <= 200:
        raise ValueError("Task title must be between 3 and 200 characters")
    return value


class TaskCreate(BaseModel):
    title: str
    description: Optional[str] = Field(None, max_length=1000)
    team_id: int = Field(..., ge=1)
    assigned_to: Optional[int] = Field(None, ge=1)

    @field_validator("title")
    @classmethod
    def check_title(cls, value: str) -> str:
        return _check_title(value)


class TaskUpdate(BaseModel):
    """Partial update; fields left out of the request body are untouched."""
    title: Optional[str] = None
    description: Optional[str] = Field(None, max_length=1000)
    status: Optional[TaskStatus] = None
    assigned_to: Optional[int] = Field(None, ge=1)

    @field_validator("title")
    @classmethod
    def check_title(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        return _check_title(value)


class TaskAssign(BaseModel):
    user_id: int = Field(..., ge=1)
