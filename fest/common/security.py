"""Security utilities for authentication and authorization."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from fest.common.config import get_settings
from fest.common.db import get_async_db
from fest.common.exceptions import AuthenticationError, ForbiddenError
from fest.auth.models import User, UserRole
from fest.auth.schemas import TokenPayload

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)
settings = get_settings()


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify a plain password against a bcrypt hash."""
    if not hashed_password:
        return False
    try:
        return bcrypt.checkpw(
            plain_password.encode('utf-8'),
            hashed_password.encode('utf-8')
        )
    except ValueError:
        return False


def get_password_hash(password: str) -> str:
    """Hash a password for storage."""
    return bcrypt.hashpw(
        password.encode('utf-8'),
        bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    ).decode('utf-8')


def create_access_token(subject: str, expires_minutes: Optional[int] = None, extra: Optional[Dict[str, Any]] = None) -> str:
    """
    Create a JWT access token.

    Args:
        subject: User ID as string
        expires_minutes: Optional custom expiration
        extra: Optional extra claims (e.g., role)

    Returns:
        Encoded JWT token string
    """
    expire_delta = timedelta(minutes=expires_minutes or settings.access_token_expire_minutes)
    expire = datetime.now(timezone.utc) + expire_delta
    to_encode: Dict[str, Any] = {
        "sub": subject,
        "exp": expire,
        "type": "access"
    }
    if extra:
        to_encode.update(extra)
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_token(token: str) -> TokenPayload:
    """
    Decode and validate an access token.

    Raises:
        AuthenticationError: If token is invalid, expired or of the wrong type
    """
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError as exc:
        raise AuthenticationError("Invalid token. Please log in again.") from exc
    if payload.get("type") != "access":
        raise AuthenticationError("Invalid token type")
    return TokenPayload(sub=payload.get("sub"), exp=payload.get("exp"), role=payload.get("role"))


async def _load_active_user(db: AsyncSession, token: str) -> User:
    payload = decode_token(token)
    try:
        user_id = int(payload.sub)
    except (TypeError, ValueError) as exc:
        raise AuthenticationError("Invalid token. Please log in again.") from exc

    user = await db.get(User, user_id)
    if not user or not user.is_active:
        raise AuthenticationError("User not found or inactive")
    return user


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_async_db)
) -> User:
    """
    Get current user from the bearer token.

    Validates JWT signature and expiration, then fetches the user so that
    deactivated or deleted accounts lose access immediately.
    """
    return await _load_active_user(db, token)


async def get_optional_user(
    token: Optional[str] = Depends(optional_oauth2_scheme),
    db: AsyncSession = Depends(get_async_db)
) -> Optional[User]:
    """Like get_current_user, but anonymous or broken tokens yield None."""
    if not token:
        return None
    try:
        return await _load_active_user(db, token)
    except AuthenticationError:
        return None


async def get_admin_user(
    current_user: User = Depends(get_current_user),
) -> User:
    """Dependency to ensure user is an admin."""
    if current_user.role != UserRole.ADMIN:
        raise ForbiddenError("Access denied. Admins only.")
    return current_user
