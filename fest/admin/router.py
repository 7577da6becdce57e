"""Admin routes. Every endpoint requires an admin bearer token."""

from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, File, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from fest.admin.schemas import AdminUserRead, EventRegistrationRow, RecomputeResponse, StatsResponse
from fest.admin.service import AdminService, roster_filename
from fest.auth.models import User
from fest.common.db import get_async_db
from fest.common.schemas import Message
from fest.common.security import get_admin_user
from fest.events import service as event_service
from fest.events.schemas import EventCreate, EventRead, EventUpdate, ListingToggleResponse
from fest.registrations.schemas import RegistrationRead, TeamNameUpdate

router = APIRouter(dependencies=[Depends(get_admin_user)])


@router.get("/stats", response_model=StatsResponse)
async def stats(db: AsyncSession = Depends(get_async_db)):
    """Dashboard totals. Reconciles event counters before counting."""
    return await AdminService(db).stats()


# ============ USERS ============

@router.get("/users", response_model=List[AdminUserRead])
async def list_users(db: AsyncSession = Depends(get_async_db)):
    return await AdminService(db).list_users()


@router.delete("/users/{user_id}", response_model=Message)
async def delete_user(
    user_id: int,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_async_db),
):
    """Delete a participant and their registrations; the user is notified by email."""
    await AdminService(db).delete_user(user_id, background_tasks)
    return Message(message="User and their registrations deleted")


# ============ EVENTS ============

@router.post("/events/recompute-counts", response_model=RecomputeResponse)
async def recompute_counts(db: AsyncSession = Depends(get_async_db)):
    """Rebuild every event's registered_count from its registrations."""
    counts = await AdminService(db).recompute_registered_counts()
    return RecomputeResponse(message=f"Recomputed counts for {len(counts)} event(s)", counts=counts)


@router.get("/events", response_model=List[EventRead])
async def list_events(db: AsyncSession = Depends(get_async_db)):
    """All events, listed or not, newest first."""
    return await event_service.list_all_events(db)


@router.post("/events", response_model=EventRead, status_code=status.HTTP_201_CREATED)
async def create_event(
    payload: EventCreate,
    admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await event_service.create_event(db, payload, admin)


@router.put("/events/{event_id}", response_model=EventRead)
async def update_event(
    event_id: int,
    payload: EventUpdate,
    db: AsyncSession = Depends(get_async_db),
):
    return await event_service.update_event(db, event_id, payload)


@router.delete("/events/{event_id}", response_model=Message)
async def delete_event(event_id: int, db: AsyncSession = Depends(get_async_db)):
    await event_service.delete_event(db, event_id)
    return Message(message="Event and its registrations deleted")


@router.patch("/events/{event_id}/toggle", response_model=ListingToggleResponse)
async def toggle_event(event_id: int, db: AsyncSession = Depends(get_async_db)):
    event = await event_service.toggle_listing(db, event_id)
    return ListingToggleResponse(
        is_listed=event.is_listed,
        message=f"Event {'listed' if event.is_listed else 'unlisted'} successfully",
    )


@router.post("/events/{event_id}/image", response_model=EventRead)
async def upload_event_image(
    event_id: int,
    file: UploadFile = File(..., description="Event image (jpg, png, webp)"),
    db: AsyncSession = Depends(get_async_db),
):
    """Upload or replace an event image; the old image is removed best-effort."""
    return await event_service.replace_event_image(db, event_id, file)


@router.get("/events/{event_id}/registrations", response_model=List[EventRegistrationRow])
async def event_registrations(event_id: int, db: AsyncSession = Depends(get_async_db)):
    return await AdminService(db).list_event_registrations(event_id)


@router.get("/events/{event_id}/registrations/export")
async def export_event_registrations(event_id: int, db: AsyncSession = Depends(get_async_db)):
    path = await AdminService(db).export_event_roster(event_id)
    return FileResponse(
        path,
        filename=roster_filename(event_id),
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )


# ============ REGISTRATIONS ============

@router.delete("/registrations/{registration_id}", response_model=Message)
async def delete_registration(registration_id: int, db: AsyncSession = Depends(get_async_db)):
    await AdminService(db).delete_registration(registration_id)
    return Message(message="Registration deleted")


@router.patch("/registrations/{registration_id}", response_model=RegistrationRead)
async def update_team_name(
    registration_id: int,
    payload: TeamNameUpdate,
    db: AsyncSession = Depends(get_async_db),
):
    """Rename a team. Assigns a TID if the registration does not have one yet."""
    return await AdminService(db).update_team_name(registration_id, payload.team_name)
