"""Pydantic schemas for registrations."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from fest.auth.schemas import PublicProfile
from fest.events.schemas import EventSummary
from fest.registrations.models import RegistrationStatus


class TeamMemberRef(BaseModel):
    pid: str = Field(..., min_length=1, max_length=20)


class RegistrationCreate(BaseModel):
    """Empty for solo events; team name and member PIDs for group events."""
    model_config = ConfigDict(populate_by_name=True)

    team_name: Optional[str] = Field(None, alias="teamName", max_length=255)
    team_members: List[TeamMemberRef] = Field(default_factory=list, alias="teamMembers")


class TeamMemberSnapshot(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    pid: str
    name: str
    college: str


class RegistrationRead(BaseModel):
    id: int
    event_id: int
    user_id: int
    pid: str
    status: RegistrationStatus
    team_name: Optional[str] = None
    tid: Optional[str] = None
    team_members: List[TeamMemberSnapshot] = []
    created_at: Optional[datetime] = None
    event: Optional[EventSummary] = None


class MyRegistrationRead(RegistrationRead):
    is_leader: bool
    can_cancel: bool


class PidCheckResponse(BaseModel):
    exists: bool = True
    user: PublicProfile


class TeamNameUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    team_name: str = Field(..., alias="teamName", max_length=255)
