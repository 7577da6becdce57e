import enum
from datetime import datetime
from typing import List, Optional

from sqlalchemy import DateTime, Enum as SAEnum, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fest.common.db import Base
from fest.auth.models import User
from fest.events.models import Event


class RegistrationStatus(str, enum.Enum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    WAITLISTED = "waitlisted"


class Registration(Base):
    __tablename__ = "registrations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    event_id: Mapped[int] = mapped_column(ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    # Leader's PID at registration time
    pid: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[RegistrationStatus] = mapped_column(
        SAEnum(RegistrationStatus, values_callable=lambda e: [m.value for m in e], name="registrationstatus"),
        nullable=False,
        default=RegistrationStatus.CONFIRMED,
        server_default=RegistrationStatus.CONFIRMED.value,
    )
    team_name: Mapped[Optional[str]] = mapped_column(String(255))
    tid: Mapped[Optional[str]] = mapped_column(String(20), unique=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("user_id", "event_id", name="uq_registration_user_event"),
    )

    user: Mapped[User] = relationship("User", back_populates="registrations")
    event: Mapped[Event] = relationship("Event", back_populates="registrations")
    team_members: Mapped[List["TeamMember"]] = relationship(
        "TeamMember",
        back_populates="registration",
        cascade="all, delete-orphan",
        order_by="TeamMember.position",
    )


class TeamMember(Base):
    """Snapshot of a team member taken at registration time, not a live user reference."""

    __tablename__ = "registration_team_members"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    registration_id: Mapped[int] = mapped_column(
        ForeignKey("registrations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    pid: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(150), nullable=False, default="", server_default="")
    college: Mapped[str] = mapped_column(String(255), nullable=False, default="", server_default="")

    registration: Mapped[Registration] = relationship("Registration", back_populates="team_members")
