"""Public event routes."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from fest.auth.models import User
from fest.common.db import get_async_db
from fest.common.security import get_optional_user
from fest.events import service as event_service
from fest.events.schemas import EventRead

router = APIRouter()


@router.get("", response_model=List[EventRead])
async def list_events(
    category: Optional[str] = Query(None, description="Category name, or 'All'"),
    search: Optional[str] = Query(None, description="Search title, description and theme"),
    db: AsyncSession = Depends(get_async_db),
):
    """List events open to participants, soonest first."""
    return await event_service.list_listed_events(db, category=category, search=search)


@router.get("/{event_id}", response_model=EventRead)
async def get_event(
    event_id: int,
    viewer: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await event_service.get_visible_event(db, event_id, viewer)
