"""Event service layer - public listing and admin management."""

import logging
from typing import List, Optional

from fastapi import UploadFile
from fastapi.concurrency import run_in_threadpool
from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from fest.auth.models import User, UserRole
from fest.common.exceptions import ForbiddenError, NotFoundError, ValidationError
from fest.common.storage import delete_file, save_event_image
from fest.events.models import Event, EventCategory, ParticipationType
from fest.events.schemas import EventCreate, EventUpdate, TeamSize
from fest.registrations.counters import delete_registrations
from fest.registrations.models import Registration

logger = logging.getLogger(__name__)


def _validate_team_size(team_size: TeamSize) -> None:
    if team_size.min < 2 or team_size.max < 2:
        raise ValidationError("Team size must be at least 2")
    if team_size.min > team_size.max:
        raise ValidationError("Min team size cannot be greater than max team size")


async def get_event_or_404(db: AsyncSession, event_id: int, for_update: bool = False) -> Event:
    stmt = select(Event).where(Event.id == event_id)
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    event = result.scalar_one_or_none()
    if not event:
        raise NotFoundError("Event not found")
    return event


async def list_listed_events(
    db: AsyncSession,
    category: Optional[str] = None,
    search: Optional[str] = None,
) -> List[Event]:
    """
    Public event listing, ordered by date.

    Args:
        category: Exact category name; "All" or empty means no filter
        search: Case-insensitive substring of title, description or theme
    """
    stmt = select(Event).where(Event.is_listed == True)  # noqa: E712

    if category and category != "All":
        try:
            stmt = stmt.where(Event.category == EventCategory(category))
        except ValueError:
            raise ValidationError(f"Unknown category: {category}")

    if search:
        pattern = f"%{search.strip()}%"
        stmt = stmt.where(
            or_(
                Event.title.ilike(pattern),
                Event.description.ilike(pattern),
                Event.theme.ilike(pattern),
            )
        )

    result = await db.execute(stmt.order_by(Event.date))
    return list(result.scalars().all())


async def get_visible_event(db: AsyncSession, event_id: int, viewer: Optional[User]) -> Event:
    """Unlisted events are only visible to admins."""
    event = await get_event_or_404(db, event_id)
    if not event.is_listed and (viewer is None or viewer.role != UserRole.ADMIN):
        raise ForbiddenError("Event is not available")
    return event


async def list_all_events(db: AsyncSession) -> List[Event]:
    result = await db.execute(select(Event).order_by(Event.created_at.desc(), Event.id.desc()))
    return list(result.scalars().all())


async def create_event(db: AsyncSession, data: EventCreate, admin: User) -> Event:
    event = Event(
        title=data.title.strip(),
        description=data.description,
        theme=(data.theme or "").strip() if data.participation_type == ParticipationType.GROUP else "",
        category=data.category,
        date=data.date,
        time=data.time or "",
        venue=data.venue.strip(),
        max_participants=data.max_participants,
        participation_type=data.participation_type,
        registered_count=0,
        is_listed=True,
        created_by_id=admin.id,
    )
    if data.participation_type == ParticipationType.GROUP and data.team_size:
        _validate_team_size(data.team_size)
        event.team_size_min = data.team_size.min
        event.team_size_max = data.team_size.max

    db.add(event)
    await db.commit()
    await db.refresh(event)
    logger.info(f"Event {event.id} '{event.title}' created by {admin.email}")
    return event


async def update_event(db: AsyncSession, event_id: int, data: EventUpdate) -> Event:
    event = await get_event_or_404(db, event_id)
    changes = data.model_dump(exclude_unset=True, exclude={"team_size", "theme"})

    for field, value in changes.items():
        if value is None:
            continue
        setattr(event, field, value.strip() if isinstance(value, str) and field in ("title", "venue") else value)

    if event.participation_type == ParticipationType.GROUP:
        if data.theme is not None:
            event.theme = data.theme.strip()
        if data.team_size:
            _validate_team_size(data.team_size)
            event.team_size_min = data.team_size.min
            event.team_size_max = data.team_size.max
    else:
        event.theme = ""

    await db.commit()
    await db.refresh(event)
    return event


async def toggle_listing(db: AsyncSession, event_id: int) -> Event:
    event = await get_event_or_404(db, event_id)
    event.is_listed = not event.is_listed
    await db.commit()
    return event


async def replace_event_image(db: AsyncSession, event_id: int, file: UploadFile) -> Event:
    """Upload a new image; the previous asset is removed on a best-effort basis."""
    event = await get_event_or_404(db, event_id)
    previous_key = event.image_key

    object_key, url = await run_in_threadpool(save_event_image, file)
    event.image_key = object_key
    event.image_url = url
    await db.commit()

    if previous_key:
        await run_in_threadpool(delete_file, previous_key)
    return event


async def delete_event(db: AsyncSession, event_id: int) -> None:
    """
    Delete an event together with its registrations.

    Removing the hosted image is best-effort and never blocks the deletion.
    """
    event = await get_event_or_404(db, event_id)
    image_key = event.image_key

    removed = await delete_registrations(db, Registration.event_id == event_id)
    await db.execute(delete(Event).where(Event.id == event_id))
    await db.commit()
    logger.info(f"Deleted event {event_id} and {removed} registration(s)")

    if image_key and not await run_in_threadpool(delete_file, image_key):
        logger.warning(f"Event {event_id} deleted but image {image_key} could not be removed")
