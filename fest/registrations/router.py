"""Participant registration routes."""

from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Body, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from fest.auth.models import User
from fest.auth.schemas import PublicProfile
from fest.common.db import get_async_db
from fest.common.schemas import Message
from fest.common.security import get_current_user
from fest.registrations import service as registration_service
from fest.registrations.schemas import (
    MyRegistrationRead,
    PidCheckResponse,
    RegistrationCreate,
    RegistrationRead,
)

router = APIRouter()


# Static paths are declared before the /{event_id} routes
@router.post("/email-summary", response_model=Message)
async def email_summary(
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Email the caller a list of their registrations (rate limited)."""
    await registration_service.email_registration_summary(db, current_user, background_tasks)
    return Message(message="Registration summary will be sent to your email shortly")


@router.get("/my/all", response_model=List[MyRegistrationRead])
async def my_registrations(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await registration_service.list_my_registrations(db, current_user)


@router.get("/{pid}/exists", response_model=PidCheckResponse)
async def check_pid(
    pid: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """
    Check that a PID can join the caller's team.

    404 when unknown, 400 when it is the caller's own PID or from another college.
    """
    participant = await registration_service.validate_pid_for_team(db, current_user, pid)
    return PidCheckResponse(exists=True, user=PublicProfile.model_validate(participant))


@router.post("/{event_id}", response_model=RegistrationRead, status_code=status.HTTP_201_CREATED)
async def register(
    event_id: int,
    background_tasks: BackgroundTasks,
    payload: Optional[RegistrationCreate] = Body(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await registration_service.register_for_event(db, current_user, event_id, payload, background_tasks)


@router.delete("/{event_id}", response_model=Message)
async def cancel(
    event_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    await registration_service.cancel_registration(db, current_user, event_id)
    return Message(message="Registration cancelled")
