import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from fest.auth.models import UserRole

NAME_PATTERN = re.compile(r"^[a-zA-Z\s]{2,}$")
ROLL_NUMBER_PATTERN = re.compile(r"^[0-9]{1,30}$")
COLLEGE_PATTERN = re.compile(r"^[a-zA-Z\s&]{2,}$")


def _check_name(value: str) -> str:
    value = value.strip()
    if not NAME_PATTERN.match(value):
        raise ValueError("Name can only contain letters and spaces, and must be at least 2 characters long")
    return value


def _check_college(value: str) -> str:
    value = value.strip()
    if not COLLEGE_PATTERN.match(value):
        raise ValueError(
            "College name can only contain letters, spaces, and & symbol, and must be at least 2 characters long"
        )
    return value


class TokenPayload(BaseModel):
    sub: Optional[str] = None
    exp: Optional[int] = None
    role: Optional[str] = None


class UserRead(BaseModel):
    id: int
    name: str
    email: EmailStr
    pid: Optional[str] = None
    roll_number: str
    college: str
    phone: Optional[str] = None
    department: Optional[str] = None
    year_of_study: Optional[str] = None
    role: UserRole
    is_active: bool = True
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PublicProfile(BaseModel):
    """Fields other participants may see when building a team."""
    pid: str
    name: str
    college: str

    model_config = ConfigDict(from_attributes=True)


class SignupRequest(BaseModel):
    name: str
    email: EmailStr
    password: str = Field(min_length=6)
    roll_number: str = Field(alias="rollNumber")
    college: str
    phone: Optional[str] = None
    department: Optional[str] = None
    year_of_study: Optional[str] = Field(None, alias="year")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str) -> str:
        return _check_name(value)

    @field_validator("college")
    @classmethod
    def check_college(cls, value: str) -> str:
        return _check_college(value)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("roll_number")
    @classmethod
    def check_roll_number(cls, value: str) -> str:
        value = value.strip()
        if not ROLL_NUMBER_PATTERN.match(value):
            raise ValueError("Roll number must contain only digits")
        return value


class LoginRequest(BaseModel):
    email: EmailStr
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class AuthResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserRead


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    college: Optional[str] = None
    department: Optional[str] = None
    year_of_study: Optional[str] = Field(None, alias="year")

    model_config = ConfigDict(populate_by_name=True)

    # Omit a field to leave it unchanged; name and college cannot be cleared
    @field_validator("name")
    @classmethod
    def check_name(cls, value: Optional[str]) -> str:
        if value is None:
            raise ValueError("Name cannot be empty")
        return _check_name(value)

    @field_validator("college")
    @classmethod
    def check_college(cls, value: Optional[str]) -> str:
        if value is None:
            raise ValueError("College cannot be empty")
        return _check_college(value)
