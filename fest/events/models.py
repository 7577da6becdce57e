import enum
from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
    true,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fest.common.db import Base
from fest.auth.models import User


class EventCategory(str, enum.Enum):
    DANCE = "Dance"
    MUSIC = "Music"
    FINE_ARTS = "Fine Arts"
    LITERARY = "Literary"
    DRAMATICS = "Dramatics"
    INFORMALS = "Informals"


class ParticipationType(str, enum.Enum):
    SOLO = "solo"
    GROUP = "group"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Event(Base):
    __tablename__ = "events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    theme: Mapped[str] = mapped_column(String(255), nullable=False, default="", server_default="")
    category: Mapped[EventCategory] = mapped_column(
        SAEnum(EventCategory, values_callable=_enum_values, name="eventcategory"), nullable=False
    )
    date: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    time: Mapped[str] = mapped_column(String(50), nullable=False, default="", server_default="")
    venue: Mapped[str] = mapped_column(String(255), nullable=False)
    max_participants: Mapped[int] = mapped_column(Integer, nullable=False)
    # Cache of non-cancelled registrations; reconciled by the admin recompute
    registered_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    is_listed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    participation_type: Mapped[ParticipationType] = mapped_column(
        SAEnum(ParticipationType, values_callable=_enum_values, name="participationtype"),
        nullable=False,
        default=ParticipationType.SOLO,
        server_default=ParticipationType.SOLO.value,
    )
    team_size_min: Mapped[int] = mapped_column(Integer, nullable=False, default=2, server_default="2")
    team_size_max: Mapped[int] = mapped_column(Integer, nullable=False, default=4, server_default="4")
    image_url: Mapped[Optional[str]] = mapped_column(String(500))
    image_key: Mapped[Optional[str]] = mapped_column(String(500))
    created_by_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("max_participants >= 1", name="ck_events_max_participants_positive"),
    )

    created_by: Mapped[Optional[User]] = relationship("User")
    registrations: Mapped[List["Registration"]] = relationship(  # noqa: F821
        "Registration", back_populates="event"
    )

    @property
    def is_group(self) -> bool:
        return self.participation_type == ParticipationType.GROUP

    @property
    def remaining_slots(self) -> int:
        return max(self.max_participants - (self.registered_count or 0), 0)
