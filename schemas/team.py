import re
from typing import Optional

from pydantic import BaseModel, Field, field_validator

TEAM_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9\s\-_]+$")


def _check_team_name(value: str) -> str:
    value = value.strip()
    if not 3 <= len(value) <= 100:
        raise ValueError("Team name must be between 3 and 100 characters")
    if not TEAM_NAME_PATTERN.match(value):
        raise ValueError("Team name can only contain letters, numbers, spaces, hyphens, and underscores")
    return value


class TeamCreate(BaseModel):
    name: str
    description: Optional[str] = Field(None, max_length=1000)

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str) -> str:
        return _check_team_name(value)


class TeamUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = Field(None, max_length=1000)

    @field_validator("name")
    @classmethod
    def check_name(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        return _check_team_name(value)


class MemberAdd(BaseModel):
    userId: int = Field(..., ge=1)
