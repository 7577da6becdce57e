"""Admin management: statistics, users, registrations and counter reconciliation."""

import logging
from pathlib import Path
from typing import Dict, List

from fastapi import BackgroundTasks
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from fest.admin.schemas import AdminUserRead, EventRegistrationRow, LeaderProfile, StatsResponse
from fest.auth.models import User, UserRole
from fest.auth.schemas import UserRead
from fest.common import mailer
from fest.common.config import get_settings
from fest.common.exceptions import DuplicateError, ForbiddenError, InvalidStateError, NotFoundError, ValidationError
from fest.common.exporter import write_rows_to_xlsx
from fest.common.identifiers import ensure_tid
from fest.events.models import Event
from fest.events.service import get_event_or_404
from fest.registrations import counters
from fest.registrations.models import Registration, RegistrationStatus
from fest.registrations.schemas import RegistrationRead
from fest.registrations.service import member_labels, to_registration_read

settings = get_settings()
logger = logging.getLogger(__name__)

ROSTER_HEADERS = [
    "Registration ID",
    "PID",
    "Name",
    "Email",
    "Roll No.",
    "College",
    "Phone",
    "Department",
    "Year",
    "Team Name",
    "TID",
    "Team Members",
    "Registered At",
]


def roster_filename(event_id: int) -> str:
    return f"event_{event_id}_registrations.xlsx"


class AdminService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def recompute_registered_counts(self) -> Dict[int, int]:
        return await counters.recompute_all(self.session)

    async def stats(self) -> StatsResponse:
        """Dashboard totals; counters are reconciled first so they match the rows."""
        await self.recompute_registered_counts()

        async def count(stmt) -> int:
            return (await self.session.execute(stmt)).scalar_one()

        return StatsResponse(
            total_events=await count(select(func.count()).select_from(Event)),
            listed_events=await count(
                select(func.count()).select_from(Event).where(Event.is_listed == True)  # noqa: E712
            ),
            total_users=await count(select(func.count()).select_from(User).where(User.role == UserRole.USER)),
            total_registrations=await count(
                select(func.count())
                .select_from(Registration)
                .where(Registration.status == RegistrationStatus.CONFIRMED)
            ),
        )

    async def list_users(self) -> List[AdminUserRead]:
        stmt = (
            select(User)
            .where(User.role == UserRole.USER)
            .options(
                selectinload(User.registrations).selectinload(Registration.event),
                selectinload(User.registrations).selectinload(Registration.team_members),
            )
            .order_by(User.created_at.desc(), User.id.desc())
        )
        result = await self.session.execute(stmt)

        users = []
        for user in result.scalars().all():
            registrations = [
                to_registration_read(r, r.event)
                for r in user.registrations
                if r.status != RegistrationStatus.CANCELLED
            ]
            users.append(AdminUserRead(**UserRead.model_validate(user).model_dump(), registrations=registrations))
        return users

    async def delete_user(self, user_id: int, background_tasks: BackgroundTasks) -> None:
        """
        Remove a participant and every registration they lead.

        Each affected event is decremented once per active registration before
        the rows go. Snapshots of this user inside other teams are left as-is.
        """
        user = await self.session.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")
        if user.role == UserRole.ADMIN:
            raise ForbiddenError("Admin accounts cannot be deleted")
        email, name = user.email, user.name

        result = await self.session.execute(
            select(Registration.event_id).where(
                Registration.user_id == user_id,
                counters.active_registrations_filter(),
            )
        )
        released = await counters.release_slots(self.session, result.scalars().all())
        removed = await counters.delete_registrations(self.session, Registration.user_id == user_id)
        await self.session.execute(delete(User).where(User.id == user_id))
        await self.session.commit()
        logger.info(
            f"Deleted user {user_id} with {removed} registration(s); released slots {released}"
        )

        background_tasks.add_task(
            mailer.send_mail,
            email,
            f"Your {settings.fest_name} account has been removed",
            mailer.account_removed_body(name),
        )

    async def _get_registration(self, registration_id: int) -> Registration:
        stmt = (
            select(Registration)
            .options(selectinload(Registration.team_members), selectinload(Registration.event))
            .where(Registration.id == registration_id)
        )
        registration = (await self.session.execute(stmt)).scalar_one_or_none()
        if not registration:
            raise NotFoundError("Registration not found")
        return registration

    async def delete_registration(self, registration_id: int) -> None:
        registration = await self._get_registration(registration_id)
        event_id = registration.event_id
        was_active = registration.status != RegistrationStatus.CANCELLED

        await counters.delete_registrations(self.session, Registration.id == registration_id)
        if was_active:
            await counters.adjust_registered_count(self.session, event_id, -1)
        await self.session.commit()
        logger.info(f"Admin deleted registration {registration_id} for event {event_id}")

    async def update_team_name(self, registration_id: int, team_name: str) -> RegistrationRead:
        """Rename a team; a registration without a TID gets one now."""
        registration = await self._get_registration(registration_id)
        if not registration.event.is_group:
            raise InvalidStateError("Team name can only be set for group event registrations")

        team_name = team_name.strip()
        if not team_name:
            raise ValidationError("Team name cannot be empty")

        registration.team_name = team_name
        await ensure_tid(self.session, registration)
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise DuplicateError("Could not allocate a team ID, please try again")
        return to_registration_read(registration, registration.event)

    async def list_event_registrations(self, event_id: int) -> List[EventRegistrationRow]:
        """Registrations for one event with leader details; admin accounts are excluded."""
        event = await get_event_or_404(self.session, event_id)
        stmt = (
            select(Registration, User)
            .join(User, Registration.user_id == User.id)
            .options(selectinload(Registration.team_members))
            .where(
                Registration.event_id == event_id,
                User.role == UserRole.USER,
                counters.active_registrations_filter(),
            )
            .order_by(Registration.created_at, Registration.id)
        )
        result = await self.session.execute(stmt)
        return [
            EventRegistrationRow(
                **to_registration_read(registration, event).model_dump(),
                leader=LeaderProfile.model_validate(leader),
            )
            for registration, leader in result.all()
        ]

    async def export_event_roster(self, event_id: int) -> Path:
        rows = []
        for row in await self.list_event_registrations(event_id):
            leader = row.leader
            rows.append([
                row.id,
                leader.pid or "",
                leader.name,
                leader.email,
                leader.roll_number,
                leader.college,
                leader.phone or "",
                leader.department or "",
                leader.year_of_study or "",
                row.team_name or "",
                row.tid or "",
                member_labels(row.team_members),
                row.created_at.strftime("%Y-%m-%d %H:%M") if row.created_at else "",
            ])
        # One file per event, replaced on every export
        return write_rows_to_xlsx(ROSTER_HEADERS, rows, roster_filename(event_id))
