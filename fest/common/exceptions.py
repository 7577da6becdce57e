"""Error taxonomy and the JSON error handlers installed on the app.

Every error leaves the API as ``{"error": "<message>"}``. Domain errors are
``HTTPException`` subclasses so services can raise them directly and FastAPI
picks up the status code.
"""

import logging
from typing import Dict, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import InterfaceError, OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class FestError(HTTPException):
    """Base class for errors with a fixed transport status."""

    default_status = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, headers: Optional[Dict[str, str]] = None):
        super().__init__(status_code=self.default_status, detail=message, headers=headers)

    @property
    def message(self) -> str:
        return self.detail


class ValidationError(FestError):
    """Malformed input: missing team name, duplicate PIDs, self-reference."""


class NotFoundError(FestError):
    default_status = status.HTTP_404_NOT_FOUND


class ForbiddenError(FestError):
    default_status = status.HTTP_403_FORBIDDEN


class AuthenticationError(FestError):
    default_status = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class InvalidStateError(FestError):
    """Event not listed / not open for registration."""


class CapacityExceededError(FestError):
    def __init__(self, remaining: int):
        self.remaining = remaining
        super().__init__(f"Not enough spots available. Event has {remaining} slots remaining.")


class DuplicateError(FestError):
    """A uniqueness constraint would be violated."""


class InvalidTeamSizeError(ValidationError):
    pass


class InvalidPidError(ValidationError):
    def __init__(self, pids):
        self.pids = list(pids)
        super().__init__(f"Invalid PID(s): {', '.join(self.pids)}")


class CollegeMismatchError(ValidationError):
    def __init__(self, college: str, pids=()):
        self.pids = list(pids)
        message = f"All team members must be from the same college as the leader ({college or 'unspecified'})"
        if self.pids:
            message += f". Mismatched PID(s): {', '.join(self.pids)}"
        super().__init__(message)


class RateLimitedError(FestError):
    default_status = status.HTTP_429_TOO_MANY_REQUESTS


class ServiceUnavailableError(FestError):
    default_status = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, message: str = "Service temporarily unavailable. Please try again later."):
        super().__init__(message)


def _error(status_code: int, message: str, headers: Optional[Dict[str, str]] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return _error(exc.status_code, message, getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if not errors:
        return _error(status.HTTP_400_BAD_REQUEST, "Invalid request")
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid value")
    if field:
        message = f"{field}: {message}"
    return _error(status.HTTP_400_BAD_REQUEST, message)


async def database_unavailable_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Database unavailable while handling {request.url.path}: {exc}")
    unavailable = ServiceUnavailableError()
    return _error(unavailable.status_code, unavailable.message)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(OperationalError, database_unavailable_handler)
    app.add_exception_handler(InterfaceError, database_unavailable_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
