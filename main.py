import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fest.common.config import get_settings
from fest.common.exceptions import register_exception_handlers
from fest.auth import router as auth_router
from fest.events import router as events_router
from fest.registrations import router as registrations_router
from fest.admin import router as admin_router

# Register every mapper before the first query
from fest.auth import models as auth_models  # noqa: F401
from fest.events import models as event_models  # noqa: F401
from fest.registrations import models as registration_models  # noqa: F401


settings = get_settings()

logging.basicConfig(level=logging.INFO)

app = FastAPI(title=settings.app_name, version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Routers - all under /api prefix
app.include_router(auth_router.router, prefix="/api/auth", tags=["auth"])
app.include_router(events_router.router, prefix="/api/events", tags=["events"])
app.include_router(registrations_router.router, prefix="/api/registrations", tags=["registrations"])
app.include_router(admin_router.router, prefix="/api/admin", tags=["admin"])


@app.get("/api/health", tags=["system"])
async def health() -> dict:
    """Health check endpoint that pings the database."""
    from sqlalchemy import text
    from fest.common.db import get_async_engine

    try:
        async with get_async_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
        db_status = "connected"
    except Exception as e:
        db_status = f"error: {str(e)}"

    return {"status": "ok", "database": db_status}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
