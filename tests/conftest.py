import asyncio
import os
import sys
import tempfile
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Settings are cached on first import, so the environment goes first
_TMP_DIR = tempfile.mkdtemp(prefix="fest-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP_DIR}/health.db"
os.environ["ADMIN_EMAILS"] = '["admin@example.com"]'
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["EXPORT_DIR"] = f"{_TMP_DIR}/exports"
os.environ.pop("SMTP_HOST", None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import text  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

import main  # noqa: E402
from fest.common import mailer  # noqa: E402
from fest.common.db import Base, get_async_db  # noqa: E402
from fest.registrations.service import summary_cooldown  # noqa: E402

DEFAULT_COLLEGE = "Government Engineering College"


class FestClient(TestClient):
    """TestClient bound to one per-test database."""

    sessionmaker: async_sessionmaker

    def sql(self, statement: str, **params):
        """Run raw SQL against the test database and return all rows (or [] for writes)."""
        async def _run():
            async with self.sessionmaker() as session:
                result = await session.execute(text(statement), params)
                rows = result.all() if result.returns_rows else []
                await session.commit()
                return rows

        return asyncio.run(_run())


@pytest.fixture
def client(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'fest.db'}", poolclass=NullPool)

    async def _create_schema():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(_create_schema())
    sessionmaker = async_sessionmaker(engine, autoflush=False, expire_on_commit=False)

    async def override_get_async_db():
        async with sessionmaker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    main.app.dependency_overrides[get_async_db] = override_get_async_db
    summary_cooldown.clear()

    with FestClient(main.app) as test_client:
        test_client.sessionmaker = sessionmaker
        yield test_client

    main.app.dependency_overrides.clear()
    asyncio.run(engine.dispose())


@pytest.fixture
def outbox(monkeypatch):
    """Capture outgoing mail instead of talking to SMTP."""
    sent = []

    def fake_send_mail(to, subject, body):
        sent.append({"to": to, "subject": subject, "body": body})
        return True

    monkeypatch.setattr(mailer, "send_mail", fake_send_mail)
    return sent


_roll_counter = iter(range(1000, 100000))


def signup(client, name="Asha Rao", email=None, college=DEFAULT_COLLEGE, roll_number=None, password="secret123"):
    roll_number = roll_number or str(next(_roll_counter))
    email = email or f"user{roll_number}@example.com"
    response = client.post(
        "/api/auth/signup",
        json={
            "name": name,
            "email": email,
            "password": password,
            "rollNumber": roll_number,
            "college": college,
        },
    )
    assert response.status_code == 201, response.text
    body = response.json()
    return {
        "user": body["user"],
        "pid": body["user"]["pid"],
        "headers": {"Authorization": f"Bearer {body['access_token']}"},
    }


def signup_admin(client):
    return signup(client, name="Fest Admin", email="admin@example.com")


def create_event(client, admin, **overrides):
    payload = {
        "title": "Battle of Bands",
        "description": "Live band competition",
        "category": "Music",
        "date": "2026-03-14T18:00:00",
        "time": "6:00 PM",
        "venue": "Open Air Theatre",
        "max_participants": 10,
        "participation_type": "solo",
    }
    payload.update(overrides)
    response = client.post("/api/admin/events", json=payload, headers=admin["headers"])
    assert response.status_code == 201, response.text
    return response.json()


def create_group_event(client, admin, min_size=2, max_size=4, **overrides):
    overrides.setdefault("title", "Group Dance")
    overrides.setdefault("category", "Dance")
    return create_event(
        client,
        admin,
        participation_type="group",
        theme="Retro",
        team_size={"min": min_size, "max": max_size},
        **overrides,
    )


def get_event(client, event_id, headers=None):
    response = client.get(f"/api/events/{event_id}", headers=headers or {})
    assert response.status_code == 200, response.text
    return response.json()
