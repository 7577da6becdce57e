"""Pydantic schemas for events."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from fest.events.models import EventCategory, ParticipationType


class TeamSize(BaseModel):
    min: int = 2
    max: int = 4


class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    theme: Optional[str] = None
    category: EventCategory
    date: datetime
    time: Optional[str] = ""
    venue: str = Field(..., min_length=1, max_length=255)
    max_participants: int = Field(..., ge=1)
    participation_type: ParticipationType = ParticipationType.SOLO
    team_size: Optional[TeamSize] = None


class EventUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    theme: Optional[str] = None
    category: Optional[EventCategory] = None
    date: Optional[datetime] = None
    time: Optional[str] = None
    venue: Optional[str] = Field(None, min_length=1, max_length=255)
    max_participants: Optional[int] = Field(None, ge=1)
    participation_type: Optional[ParticipationType] = None
    team_size: Optional[TeamSize] = None


class EventSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    category: EventCategory
    date: datetime
    time: Optional[str] = ""
    venue: str
    image_url: Optional[str] = None
    is_listed: bool


class EventRead(EventSummary):
    description: str
    theme: Optional[str] = ""
    max_participants: int
    registered_count: int
    remaining_slots: int
    participation_type: ParticipationType
    team_size_min: int
    team_size_max: int
    created_at: Optional[datetime] = None


class ListingToggleResponse(BaseModel):
    is_listed: bool
    message: str
