"""Registration workflow: register, cancel, team PID checks and summaries."""

import logging
import math
from typing import List, Optional, Sequence, Tuple

from fastapi import BackgroundTasks
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from fest.auth.models import User, UserRole
from fest.common import mailer
from fest.common.config import get_settings
from fest.common.cooldown import Cooldown
from fest.common.exceptions import (
    CapacityExceededError,
    CollegeMismatchError,
    DuplicateError,
    FestError,
    ForbiddenError,
    InvalidPidError,
    InvalidStateError,
    InvalidTeamSizeError,
    NotFoundError,
    RateLimitedError,
    ValidationError,
)
from fest.common.identifiers import ensure_tid
from fest.events.models import Event
from fest.events.schemas import EventSummary
from fest.events.service import get_event_or_404
from fest.registrations import counters
from fest.registrations.models import Registration, RegistrationStatus, TeamMember
from fest.registrations.schemas import (
    MyRegistrationRead,
    RegistrationCreate,
    RegistrationRead,
    TeamMemberSnapshot,
)

settings = get_settings()
logger = logging.getLogger(__name__)

summary_cooldown = Cooldown(settings.summary_email_cooldown_minutes * 60)


def normalize_pid(value: Optional[str]) -> str:
    return (value or "").strip().upper()


def format_event_date(event: Event) -> str:
    return event.date.strftime("%d %b %Y") if event.date else ""


def to_registration_read(registration: Registration, event: Optional[Event] = None) -> RegistrationRead:
    return RegistrationRead(
        id=registration.id,
        event_id=registration.event_id,
        user_id=registration.user_id,
        pid=registration.pid,
        status=registration.status,
        team_name=registration.team_name,
        tid=registration.tid,
        team_members=[TeamMemberSnapshot.model_validate(m) for m in registration.team_members],
        created_at=registration.created_at,
        event=EventSummary.model_validate(event) if event is not None else None,
    )


async def find_registration(db: AsyncSession, user_id: int, event_id: int) -> Optional[Registration]:
    stmt = (
        select(Registration)
        .options(selectinload(Registration.team_members))
        .where(Registration.user_id == user_id, Registration.event_id == event_id)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def find_participant(db: AsyncSession, pid: str) -> Optional[User]:
    """Only non-admin accounts count as participants."""
    stmt = select(User).where(User.pid == pid, User.role == UserRole.USER)
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def build_team(
    db: AsyncSession,
    leader: User,
    event: Event,
    data: Optional[RegistrationCreate],
) -> Tuple[str, List[TeamMember]]:
    """
    Validate a group registration payload and snapshot its members.

    Checks run in a fixed order so the caller always sees the first problem:
    team name, member list, team size (leader included), self-inclusion,
    duplicate PIDs, unknown PIDs, then college mismatches. Member snapshots
    keep the order the PIDs were submitted in.
    """
    team_name = (data.team_name or "").strip() if data else ""
    if not team_name:
        raise ValidationError("Team name is required for group events")

    refs = data.team_members if data else []
    if not refs:
        raise ValidationError("At least one team member is required for group events")

    team_size = len(refs) + 1
    if team_size < event.team_size_min:
        raise InvalidTeamSizeError(
            f"Team must have at least {event.team_size_min} members including the leader"
        )
    if team_size > event.team_size_max:
        raise InvalidTeamSizeError(
            f"Team can have at most {event.team_size_max} members including the leader"
        )

    pids = [normalize_pid(ref.pid) for ref in refs]
    if leader.pid and leader.pid in pids:
        raise ValidationError("You cannot add yourself as a team member")
    if len(set(pids)) != len(pids):
        raise ValidationError("Duplicate PIDs are not allowed in a team")

    result = await db.execute(select(User).where(User.pid.in_(pids), User.role == UserRole.USER))
    found = {user.pid: user for user in result.scalars().all()}

    invalid = [pid for pid in pids if pid not in found]
    if invalid:
        raise InvalidPidError(invalid)

    leader_college = leader.college or ""
    mismatched = [pid for pid in pids if (found[pid].college or "") != leader_college]
    if mismatched:
        raise CollegeMismatchError(leader_college, mismatched)

    members = [
        TeamMember(position=position, pid=pid, name=found[pid].name, college=found[pid].college or "")
        for position, pid in enumerate(pids)
    ]
    return team_name, members


async def register_for_event(
    db: AsyncSession,
    user: User,
    event_id: int,
    data: Optional[RegistrationCreate],
    background_tasks: BackgroundTasks,
) -> RegistrationRead:
    """
    Register ``user`` (as leader, for group events) for an event.

    The slot is claimed with the counter UPDATE before capacity is checked.
    That write holds the event row (the database write lock on SQLite) until
    commit or rollback, so concurrent registrations for one event run one at
    a time and the count can never go past ``max_participants``. Capacity is
    judged from the registrations table itself, not from the cached counter.
    """
    if user.role == UserRole.ADMIN:
        raise ForbiddenError("Admins cannot register for events")
    user_id = user.id

    event = await get_event_or_404(db, event_id, for_update=True)
    if not event.is_listed:
        raise InvalidStateError("Event is not open for registration")

    await counters.adjust_registered_count(db, event.id, 1)
    try:
        active = await counters.count_active_registrations(db, event.id)
        if active + 1 > event.max_participants:
            raise CapacityExceededError(max(event.max_participants - active, 0))

        if await find_registration(db, user_id, event.id):
            raise DuplicateError("Already registered for this event")

        registration = Registration(
            user_id=user_id,
            event_id=event.id,
            pid=user.pid,
            status=RegistrationStatus.CONFIRMED,
            team_members=[],
        )
        if event.is_group:
            registration.team_name, registration.team_members = await build_team(db, user, event, data)
            await ensure_tid(db, registration)

        db.add(registration)
        await db.flush()
        await db.commit()
    except FestError:
        # Releases the claimed slot and the lock
        await db.rollback()
        raise
    except IntegrityError:
        await db.rollback()
        if await find_registration(db, user_id, event_id):
            raise DuplicateError("Already registered for this event")
        logger.warning(f"Team ID collision while registering user {user_id} for event {event_id}")
        raise DuplicateError("Could not allocate a team ID, please try again")

    logger.info(f"User {user_id} registered for event {event.id} ({registration.tid or 'solo'})")

    background_tasks.add_task(
        mailer.send_mail,
        user.email,
        f"Registration confirmed: {event.title}",
        mailer.registration_body(
            user.name,
            event.title,
            format_event_date(event),
            event.time,
            event.venue,
            team_name=registration.team_name,
            tid=registration.tid,
            members=[f"{m.name} ({m.pid})" for m in registration.team_members],
        ),
    )
    return to_registration_read(registration, event)


async def cancel_registration(db: AsyncSession, user: User, event_id: int) -> None:
    """Only the leader (registration owner) may cancel; members get 403."""
    registration = await find_registration(db, user.id, event_id)
    if not registration:
        if user.pid and await is_team_member(db, user.pid, event_id):
            raise ForbiddenError("Only the team leader can cancel this registration")
        raise NotFoundError("Registration not found")

    await counters.delete_registrations(db, Registration.id == registration.id)
    if registration.status != RegistrationStatus.CANCELLED:
        await counters.adjust_registered_count(db, event_id, -1)
    await db.commit()
    logger.info(f"User {user.id} cancelled registration {registration.id} for event {event_id}")


async def is_team_member(db: AsyncSession, pid: str, event_id: int) -> bool:
    stmt = (
        select(TeamMember.id)
        .join(Registration, TeamMember.registration_id == Registration.id)
        .where(TeamMember.pid == pid, Registration.event_id == event_id)
        .limit(1)
    )
    result = await db.execute(stmt)
    return result.first() is not None


async def validate_pid_for_team(db: AsyncSession, requester: User, candidate: str) -> User:
    """Pre-check a PID before it is added to the requester's team."""
    pid = normalize_pid(candidate)
    if not pid:
        raise ValidationError("PID is required")
    if requester.pid and pid == requester.pid:
        raise ValidationError("You cannot add yourself as a team member")

    participant = await find_participant(db, pid)
    if not participant:
        raise NotFoundError("PID not found")

    if (participant.college or "") != (requester.college or ""):
        raise CollegeMismatchError(requester.college or "", [pid])
    return participant


async def list_my_registrations(db: AsyncSession, user: User) -> List[MyRegistrationRead]:
    """Registrations the user leads plus those listing them as a team member."""
    member_of = select(TeamMember.registration_id).where(TeamMember.pid == user.pid)
    stmt = (
        select(Registration)
        .options(selectinload(Registration.team_members), selectinload(Registration.event))
        .where(
            or_(Registration.user_id == user.id, Registration.id.in_(member_of)),
            counters.active_registrations_filter(),
        )
        .order_by(Registration.created_at.desc(), Registration.id.desc())
    )
    result = await db.execute(stmt)

    rows = []
    for registration in result.scalars().all():
        is_leader = registration.user_id == user.id
        base = to_registration_read(registration, registration.event)
        rows.append(MyRegistrationRead(**base.model_dump(), is_leader=is_leader, can_cancel=is_leader))
    return rows


def _summary_line(registration: MyRegistrationRead) -> str:
    event = registration.event
    parts = [event.title if event else f"Event #{registration.event_id}"]
    if event:
        parts.append(event.date.strftime("%d %b %Y") + (f" {event.time}" if event.time else ""))
        parts.append(event.venue)
    if registration.team_name:
        team = f"Team {registration.team_name}"
        if registration.tid:
            team += f" ({registration.tid})"
        parts.append(team)
    parts.append("Leader" if registration.is_leader else "Member")
    return " | ".join(parts)


async def email_registration_summary(
    db: AsyncSession,
    user: User,
    background_tasks: BackgroundTasks,
) -> int:
    """
    Queue an email listing every event the user takes part in.

    Limited to one request per user per cooldown window. Returns the number
    of registrations included.
    """
    left = summary_cooldown.remaining(user.id)
    if left > 0:
        minutes = max(1, math.ceil(left / 60))
        raise RateLimitedError(
            f"Summary email already sent. Please try again in {minutes} minute{'s' if minutes != 1 else ''}."
        )

    registrations = await list_my_registrations(db, user)
    body = mailer.summary_body(
        user.name,
        user.pid,
        user.roll_number,
        user.college,
        [_summary_line(r) for r in registrations],
    )
    background_tasks.add_task(mailer.send_mail, user.email, f"Your {settings.fest_name} registrations", body)
    summary_cooldown.hit(user.id)
    return len(registrations)


def member_labels(members: Sequence) -> str:
    return ", ".join(f"{m.name} ({m.pid})" for m in members)
