from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from fest.auth.schemas import UserRead
from fest.registrations.schemas import RegistrationRead


class StatsResponse(BaseModel):
    total_events: int
    listed_events: int
    total_users: int
    total_registrations: int


class RecomputeResponse(BaseModel):
    message: str
    counts: Dict[int, int]


class AdminUserRead(UserRead):
    registrations: List[RegistrationRead] = []


class LeaderProfile(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    pid: Optional[str] = None
    roll_number: str
    college: str
    phone: Optional[str] = None
    department: Optional[str] = None
    year_of_study: Optional[str] = None


class EventRegistrationRow(RegistrationRead):
    leader: LeaderProfile
