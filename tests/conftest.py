"""Test configuration and fixtures.

Each test gets its own database:
1. An in-memory SQLite database by default (TEST_DATABASE_URL points the
   suite at PostgreSQL instead)
2. The schema is created before the test and dropped after it
3. Endpoints run on the same session as the test through a dependency override
4. Routers commit for real; isolation comes from the per-test database
"""

import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv

# Settings are read at import time, load the test environment first
test_env_path = Path(__file__).parent.parent / ".env.test"
load_dotenv(test_env_path, override=True)

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.exc import SQLAlchemyError  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from src.database.base import Base  # noqa: E402
from src.database.dependencies import get_db_session, get_session_scope  # noqa: E402
from src.features.auth.jwt_utils import TokenKind, issue_token  # noqa: E402
from src.features.project.models import ProjectMembership, ProjectRole  # noqa: E402
from src.features.user.models import User  # noqa: E402
from src.features.workspace.models import WorkspaceMember, WorkspaceRole  # noqa: E402
from src.main import app  # noqa: E402
from src.shared.events.broker import EventBroker  # noqa: E402
from src.shared.mail.mailer import Mailer, get_mailer  # noqa: E402


class RecordingMailer(Mailer):
    """Mailer that keeps messages in memory; set ``fail`` to simulate an outage."""

    def __init__(self):
        self.sent: list[dict] = []
        self.fail = False

    async def send(self, to: str, subject: str, html: str) -> None:
        if self.fail:
            raise ConnectionError("SMTP relay unavailable")
        self.sent.append({"to": to, "subject": subject, "html": html})


# Database Setup - Function Scope (Fresh Database Per Test)


@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine]:
    test_db_url = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite://")

    if test_db_url.startswith("sqlite"):
        # One shared connection so the in-memory database outlives each session
        engine = create_async_engine(
            test_db_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_async_engine(test_db_url)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    async with AsyncSession(bind=db_engine, expire_on_commit=False) as async_session:
        yield async_session


# FastAPI Client & Dependency Overrides


@pytest_asyncio.fixture
async def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest_asyncio.fixture(autouse=True)
async def override_dependencies(db_engine: AsyncEngine, session: AsyncSession, mailer: RecordingMailer):
    """Route endpoints to the test database and the in-memory mailer.

    Requests share the test session. Short-lived scopes (websocket event
    handling) get their own session on the same engine.
    """

    async def _get_test_session():
        try:
            yield session
        except SQLAlchemyError:
            await session.rollback()
            raise

    @asynccontextmanager
    async def _test_session_scope():
        async with AsyncSession(bind=db_engine, expire_on_commit=False) as scoped:
            yield scoped

    app.dependency_overrides[get_db_session] = _get_test_session
    app.dependency_overrides[get_session_scope] = lambda: _test_session_scope
    app.dependency_overrides[get_mailer] = lambda: mailer
    yield
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def broker() -> AsyncGenerator[EventBroker]:
    """Replace the application broker with a fresh one for the test."""
    original = app.state.event_broker
    app.state.event_broker = EventBroker(buffer_size=10)
    yield app.state.event_broker
    app.state.event_broker = original


@pytest_asyncio.fixture
async def client() -> AsyncGenerator[AsyncClient]:
    """Unauthenticated HTTP client. The cookie jar persists across requests."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def auth_headers():
    """Build a bearer header with a real access token for a user."""

    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {issue_token(TokenKind.ACCESS, user.id)}"}

    return _headers


# Test Data Factories


@pytest_asyncio.fixture
async def make_user(session: AsyncSession):
    """Factory fixture to create users.

    Usage:
        user = await make_user()
        alice = await make_user(name="Alice", email="alice@example.com", password="pw1")
    """
    counter = 0

    async def _factory(name=None, email=None, password="TestPass123!", **kwargs) -> User:
        nonlocal counter
        counter += 1

        user = User(
            name=name or f"Test User {counter}",
            email=email or f"testuser{counter}@example.com",
            hashed_password=User.hash_password(password),
            **kwargs,
        )
        session.add(user)
        await session.commit()
        return user

    yield _factory


@pytest_asyncio.fixture
async def add_workspace_member(session: AsyncSession):
    async def _add(workspace_id: int, user: User, role: WorkspaceRole = WorkspaceRole.MEMBER) -> None:
        session.add(WorkspaceMember(workspace_id=workspace_id, user_id=user.id, role=role.value))
        await session.commit()

    return _add


@pytest_asyncio.fixture
async def add_project_member(session: AsyncSession):
    async def _add(project_id: int, user: User, role: ProjectRole = ProjectRole.MEMBER) -> None:
        session.add(ProjectMembership(project_id=project_id, user_id=user.id, role=role.value))
        await session.commit()

    return _add
