"""Authentication service: signup with PID assignment, login, profile."""

import logging

from fastapi import BackgroundTasks
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from fest.auth.models import User, UserRole
from fest.auth import schemas as auth_schema
from fest.common import mailer
from fest.common.config import get_settings
from fest.common.exceptions import AuthenticationError, DuplicateError, ForbiddenError
from fest.common.identifiers import generate_pid
from fest.common.security import create_access_token, get_password_hash, verify_password

settings = get_settings()
logger = logging.getLogger(__name__)

# PID allocation is read-then-write; a concurrent signup can take the same
# sequence, in which case the unique constraint fires and we try again.
PID_ALLOCATION_ATTEMPTS = 3

REQUIRED_PROFILE_FIELDS = ("name", "college")


class AuthService:
    """Service for authentication and user management."""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _issue_token(self, user: User) -> auth_schema.AuthResponse:
        token = create_access_token(str(user.id), extra={"role": user.role.value})
        return auth_schema.AuthResponse(access_token=token, user=auth_schema.UserRead.model_validate(user))

    async def _ensure_unique(self, data: auth_schema.SignupRequest) -> None:
        stmt = select(User.email, User.roll_number).where(
            or_(User.email == data.email, User.roll_number == data.roll_number)
        )
        result = await self.session.execute(stmt)
        for email, roll_number in result.all():
            if email == data.email:
                raise DuplicateError("An account with this email already exists")
            if roll_number == data.roll_number:
                raise DuplicateError("An account with this roll number already exists")

    async def signup(
        self,
        data: auth_schema.SignupRequest,
        background_tasks: BackgroundTasks,
    ) -> auth_schema.AuthResponse:
        """
        Create a participant account and assign its PID.

        Emails listed in ADMIN_EMAILS get the admin role. Sends a welcome
        email with the PID in the background.
        """
        await self._ensure_unique(data)

        admin_emails = {email.strip().lower() for email in settings.admin_emails}
        role = UserRole.ADMIN if data.email in admin_emails else UserRole.USER
        hashed_password = get_password_hash(data.password)

        user = None
        for attempt in range(1, PID_ALLOCATION_ATTEMPTS + 1):
            pid = await generate_pid(self.session)
            user = User(
                name=data.name,
                email=data.email,
                hashed_password=hashed_password,
                pid=pid,
                roll_number=data.roll_number,
                college=data.college,
                phone=data.phone or None,
                department=data.department or None,
                year_of_study=data.year_of_study or None,
                role=role,
                is_verified=True,
            )
            self.session.add(user)
            try:
                await self.session.commit()
                break
            except IntegrityError:
                await self.session.rollback()
                # Lost a race on email/roll number, or on the PID itself
                await self._ensure_unique(data)
                logger.warning(f"PID {pid} was taken concurrently (attempt {attempt})")
        else:
            raise DuplicateError("Could not allocate a participant ID, please retry")

        logger.info(f"Created {role.value} account {user.pid} for {user.email}")

        background_tasks.add_task(
            mailer.send_mail,
            user.email,
            f"Welcome to {settings.fest_name}",
            mailer.welcome_body(user.name, user.pid),
        )
        return self._issue_token(user)

    async def login(self, data: auth_schema.LoginRequest) -> auth_schema.AuthResponse:
        result = await self.session.execute(select(User).where(User.email == data.email))
        user = result.scalar_one_or_none()

        if not user or not verify_password(data.password, user.hashed_password):
            raise AuthenticationError("Invalid email or password")
        if not user.is_active:
            raise ForbiddenError("Account has been deactivated")

        return self._issue_token(user)

    async def update_profile(self, user: User, data: auth_schema.ProfileUpdate) -> User:
        """
        Update editable profile fields.

        Team-member snapshots on existing registrations keep the old values.
        """
        changes = data.model_dump(exclude_unset=True)
        for field, value in changes.items():
            if field in REQUIRED_PROFILE_FIELDS and value is None:
                continue
            setattr(user, field, value)
        await self.session.commit()
        await self.session.refresh(user)
        return user
