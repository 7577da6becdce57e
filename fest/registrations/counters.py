"""Capacity counter for events.

``Event.registered_count`` is a denormalized cache of the number of
non-cancelled registrations per event; every registration, solo or team,
takes exactly one slot. All changes go through single UPDATE statements so
concurrent writers never lose an increment, and ``recompute_all`` rebuilds
the cache from the registrations table whenever it may have drifted.
"""

import logging
from collections import Counter
from typing import Dict, Iterable

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from fest.events.models import Event
from fest.registrations.models import Registration, RegistrationStatus, TeamMember

logger = logging.getLogger(__name__)


def active_registrations_filter():
    return Registration.status != RegistrationStatus.CANCELLED


async def count_active_registrations(db: AsyncSession, event_id: int) -> int:
    stmt = select(func.count()).select_from(Registration).where(
        Registration.event_id == event_id,
        active_registrations_filter(),
    )
    result = await db.execute(stmt)
    return result.scalar() or 0


async def adjust_registered_count(db: AsyncSession, event_id: int, delta: int) -> None:
    """Atomically add ``delta`` (may be negative) to an event's counter."""
    if not delta:
        return
    await db.execute(
        update(Event)
        .where(Event.id == event_id)
        .values(registered_count=Event.registered_count + delta)
        .execution_options(synchronize_session=False)
    )


async def release_slots(db: AsyncSession, event_ids: Iterable[int]) -> Dict[int, int]:
    """
    Decrement each event once per occurrence in ``event_ids``.

    Returns the per-event decrement that was applied.
    """
    per_event = Counter(event_ids)
    for event_id, count in per_event.items():
        await adjust_registered_count(db, event_id, -count)
    return dict(per_event)


async def delete_registrations(db: AsyncSession, *criteria) -> int:
    """Bulk delete registrations (and their team snapshots) matching ``criteria``."""
    registration_ids = select(Registration.id).where(*criteria)
    await db.execute(
        delete(TeamMember)
        .where(TeamMember.registration_id.in_(registration_ids))
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(
        delete(Registration).where(*criteria).execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


async def active_counts_by_event(db: AsyncSession) -> Dict[int, int]:
    stmt = (
        select(Registration.event_id, func.count())
        .where(active_registrations_filter())
        .group_by(Registration.event_id)
    )
    result = await db.execute(stmt)
    return {event_id: total for event_id, total in result.all()}


async def recompute_all(db: AsyncSession) -> Dict[int, int]:
    """
    Overwrite every event's counter from the registrations table.

    Events without active registrations are explicitly set to zero.
    Idempotent; safe to run at any time. Returns {event_id: count}.
    """
    active_count = (
        select(func.count())
        .select_from(Registration)
        .where(Registration.event_id == Event.id, active_registrations_filter())
        .scalar_subquery()
    )
    await db.execute(
        update(Event)
        .values(registered_count=active_count)
        .execution_options(synchronize_session=False)
    )
    await db.commit()

    counts = await active_counts_by_event(db)
    event_ids = (await db.execute(select(Event.id))).scalars().all()
    recomputed = {event_id: counts.get(event_id, 0) for event_id in event_ids}
    logger.info(f"Recomputed registered counts for {len(recomputed)} event(s)")
    return recomputed
