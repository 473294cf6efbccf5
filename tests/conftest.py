"""
Shared test fixtures for osintdesk.

Each test gets a fresh SQLite database (aiosqlite) with foreign keys enabled,
and Celery dispatch is captured in memory instead of reaching a broker.
"""

import os
from datetime import datetime
from typing import Any
from unittest.mock import MagicMock
from uuid import uuid4

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-tests")
os.environ.setdefault("WORKER_TOKEN", "test-worker-token")

from osintdesk.db.base import Base  # noqa: E402
from osintdesk.db.session import enable_sqlite_foreign_keys  # noqa: E402
from osintdesk.main import app  # noqa: E402
import osintdesk.models  # noqa: E402,F401
from osintdesk.config import settings  # noqa: E402


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'osintdesk_test.db'}", echo=False
    )
    enable_sqlite_foreign_keys(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(test_engine):
    """Fresh tables per test: create → yield session → drop."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )
    async with factory() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture(scope="function")
async def second_session(test_engine, db_session):
    """A second connection to the same database, for racing writers."""
    factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with factory() as session:
        yield session


class InterleavedSession:
    """
    Wraps a session and runs ``hook`` once, right before the first call to
    ``method`` for which ``when(*args)`` holds. Lets a test slip another
    writer in between a service's read and its write.
    """

    def __init__(self, session, method, hook, when=None):
        self._session = session
        self._method = method
        self._hook = hook
        self._when = when

    def __getattr__(self, name):
        attr = getattr(self._session, name)
        if name != self._method:
            return attr

        async def wrapped(*args, **kwargs):
            if self._hook is not None and (self._when is None or self._when(*args)):
                hook, self._hook = self._hook, None
                await hook()
            return await attr(*args, **kwargs)

        return wrapped


@pytest_asyncio.fixture(scope="function")
async def interleaved(second_session):
    def _wrap(method, hook, when=None):
        return InterleavedSession(second_session, method, hook, when)

    return _wrap


# ---------------------------------------------------------------------------
# Celery mock
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture()
async def mock_celery(monkeypatch):
    """Capture send_task calls instead of hitting a broker."""
    dispatched: list[dict[str, Any]] = []

    def fake_send_task(name, args=None, kwargs=None, **kw):
        dispatched.append({"name": name, "args": args, "kwargs": kwargs, **kw})
        result = MagicMock()
        result.id = str(uuid4())
        return result

    monkeypatch.setattr(
        "osintdesk.celery_app.get_celery_app",
        lambda: MagicMock(send_task=fake_send_task),
    )
    return dispatched


@pytest_asyncio.fixture()
async def broken_celery(monkeypatch):
    """A broker that refuses every task."""

    def failing_send_task(name, args=None, kwargs=None, **kw):
        raise ConnectionError("broker unavailable")

    monkeypatch.setattr(
        "osintdesk.celery_app.get_celery_app",
        lambda: MagicMock(send_task=failing_send_task),
    )


# ---------------------------------------------------------------------------
# Test client
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture(scope="function")
async def test_client(db_session):
    from osintdesk.db.session import get_db

    async def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as client:
        yield client

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Seed data helpers
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture(scope="function")
async def user_factory(db_session):
    from osintdesk.models.iam.users import Profile
    from osintdesk.api.v1.helpers.authentication import hash_password

    async def _create(
        email: str | None = None,
        full_name: str = "Test User",
        password: str = "password123",
        role: str = "user",
        is_suspended: bool = False,
        is_active: bool = True,
    ) -> Profile:
        profile = Profile(
            email=email or f"user+{uuid4().hex[:6]}@example.com",
            full_name=full_name,
            hashed_password=hash_password(password),
            role=role,
            is_active=is_active,
            is_suspended=is_suspended,
        )
        db_session.add(profile)
        await db_session.commit()
        await db_session.refresh(profile)
        return profile

    return _create


@pytest_asyncio.fixture(scope="function")
async def login(test_client):
    """Log in and return bearer headers."""

    async def _login(email: str, password: str = "password123") -> dict[str, str]:
        resp = await test_client.post(
            "/api/v1/iam/users/login",
            json={"email": email, "password": password},
        )
        assert resp.status_code == 200, resp.text
        token = resp.json()["data"]["access_token"]
        return {"Authorization": f"Bearer {token}"}

    return _login


@pytest_asyncio.fixture(scope="function")
async def seed_user(user_factory):
    """A regular analyst account."""
    return await user_factory(email="analyst@example.com", full_name="Analyst")


@pytest_asyncio.fixture(scope="function")
async def auth_headers(seed_user, login):
    return await login(seed_user.email)


@pytest_asyncio.fixture(scope="function")
async def other_user(user_factory):
    return await user_factory(email="other@example.com", full_name="Other")


@pytest_asyncio.fixture(scope="function")
async def other_headers(other_user, login):
    return await login(other_user.email)


@pytest_asyncio.fixture(scope="function")
async def admin_user(user_factory):
    return await user_factory(
        email="boss@example.com", full_name="Boss", role="admin"
    )


@pytest_asyncio.fixture(scope="function")
async def admin_headers(admin_user, login):
    return await login(admin_user.email)


@pytest_asyncio.fixture()
async def worker_headers():
    return {"X-Worker-Token": settings.worker_token}


# ---------------------------------------------------------------------------
# Factory fixtures
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture(scope="function")
async def job_factory(db_session):
    """Insert a job row directly, bypassing validation and dispatch."""
    from osintdesk.models.jobs import Job

    async def _create(
        user_id,
        tool_name: str = "sherlock",
        status: str = "pending",
        input_data: dict | None = None,
        investigation_id=None,
        progress: int = 0,
        priority: int = 0,
        output_data: Any = None,
        error_message: str | None = None,
        created_at: datetime | None = None,
    ) -> Job:
        job = Job(
            user_id=user_id,
            tool_name=tool_name,
            status=status,
            input_data=input_data or {"username": "johndoe", "timeout": 60},
            investigation_id=investigation_id,
            progress=progress,
            priority=priority,
            output_data=output_data,
            error_message=error_message,
        )
        db_session.add(job)
        await db_session.commit()

        if created_at is not None:
            await db_session.execute(
                update(Job).where(Job.job_id == job.job_id).values(created_at=created_at)
            )
            await db_session.commit()

        await db_session.refresh(job)
        return job

    return _create


@pytest_asyncio.fixture(scope="function")
async def investigation_factory(db_session):
    from osintdesk.models.investigations import Investigation

    async def _create(
        user_id,
        name: str = "Case File",
        description: str | None = None,
        tags: list[str] | None = None,
        status: str = "active",
    ) -> Investigation:
        investigation = Investigation(
            user_id=user_id,
            name=name,
            description=description,
            tags=tags or [],
            status=status,
            metadata_attributes={},
        )
        db_session.add(investigation)
        await db_session.commit()
        await db_session.refresh(investigation)
        return investigation

    return _create


@pytest_asyncio.fixture(scope="function")
async def item_factory(db_session):
    """Link an existing job into an investigation without going through the API."""
    from osintdesk.models.investigations import InvestigationItem

    async def _create(
        investigation_id,
        job_id,
        notes: str | None = None,
        tags: list[str] | None = None,
        is_favorite: bool = False,
        created_at: datetime | None = None,
    ) -> InvestigationItem:
        item = InvestigationItem(
            investigation_id=investigation_id,
            job_id=job_id,
            notes=notes,
            tags=tags or [],
            is_favorite=is_favorite,
        )
        if created_at is not None:
            item.created_at = created_at
        db_session.add(item)
        await db_session.commit()
        await db_session.refresh(item)
        return item

    return _create
