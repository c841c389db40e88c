"""Shared fixtures: fresh in-memory database, API client and signed-in teachers.

Every test gets its own SQLite database with ``get_db`` overridden, an empty
rate limiter, a temporary upload directory and a record of the e-mails the
API would have sent.
"""
import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-with-enough-length-for-hs256")
os.environ["REDIS_URL"] = ""
os.environ["EMAIL_BACKEND"] = "background"
os.environ.pop("SMTP_HOST", None)

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from homeschool.core.config import settings
from homeschool.core.database import get_db
from homeschool.core.rate_limiter import rate_limiter
from homeschool.main import app
from homeschool.models import Base
from tests.helpers import bearer, register


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    rate_limiter.reset()
    yield
    rate_limiter.reset()


@pytest.fixture(autouse=True)
def upload_dir(tmp_path, monkeypatch):
    path = tmp_path / "uploads"
    path.mkdir()
    monkeypatch.setattr(settings, "upload_dir", str(path))
    return path


@pytest.fixture
def sent_emails(monkeypatch):
    """Capture queued e-mails instead of sending them"""
    outbox = []

    def fake_queue_email(background_tasks, to_emails, subject, body):
        outbox.append({"to": list(to_emails), "subject": subject, "body": body})

    monkeypatch.setattr("homeschool.routers.auth.queue_email", fake_queue_email)
    monkeypatch.setattr("homeschool.routers.lesson_plans.queue_email", fake_queue_email)
    return outbox


@pytest.fixture
async def client(session_factory, sent_emails):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
async def auth_headers(client):
    return bearer(await register(client))


@pytest.fixture
async def other_headers(client):
    """A second, unrelated teacher"""
    return bearer(await register(client, email="other@example.com", first_name="Sam", last_name="Roe"))


@pytest.fixture
async def student(client, auth_headers):
    response = await client.post(
        "/api/v1/students",
        json={"first_name": "Ada", "last_name": "Lovelace", "grade_level": "5"},
        headers=auth_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


@pytest.fixture
async def subject(client, auth_headers):
    response = await client.post(
        "/api/v1/subjects", json={"name": "Mathematics", "color": "#4A90E2"}, headers=auth_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]
