"""Authentication router: signup, login and profile."""

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from fest.common.db import get_async_db
from fest.auth import schemas as auth_schema
from fest.common.schemas import Message
from fest.common.security import get_current_user
from fest.auth.service import AuthService
from fest.auth.models import User

router = APIRouter()


@router.post("/signup", response_model=auth_schema.AuthResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    payload: auth_schema.SignupRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_async_db),
):
    """
    Create a participant account.

    Assigns the participant ID (PID) and returns a bearer token.
    """
    service = AuthService(db)
    return await service.signup(payload, background_tasks)


@router.post("/login", response_model=auth_schema.AuthResponse)
async def login(payload: auth_schema.LoginRequest, db: AsyncSession = Depends(get_async_db)):
    """Login with email and password."""
    service = AuthService(db)
    return await service.login(payload)


@router.post("/logout", response_model=Message)
async def logout():
    """Tokens are stateless; the client drops its copy."""
    return Message(message="Logged out successfully")


@router.get("/me", response_model=auth_schema.UserRead)
async def me(current_user: User = Depends(get_current_user)):
    return auth_schema.UserRead.model_validate(current_user)


@router.put("/profile", response_model=auth_schema.UserRead)
async def update_profile(
    payload: auth_schema.ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Update name, phone, college, department or year of study."""
    service = AuthService(db)
    return await service.update_profile(current_user, payload)
