# Copyright (C) 2024 Mayor Exchange Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Pytest fixtures. Tests run against a throwaway SQLite file with fake identity and mail collaborators."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from datetime import datetime, timedelta, timezone  # noqa: E402

import pytest  # noqa: E402
from fastapi import Depends  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import select  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

from auth_actions_server.config import Settings  # noqa: E402
from auth_actions_server.database import get_db  # noqa: E402
from auth_actions_server.dependencies import get_issuer, get_verifier  # noqa: E402
from auth_actions_server.errors import ConfigurationError, DependencyError  # noqa: E402
from auth_actions_server.main import app  # noqa: E402
from auth_actions_server.models import Base, VerificationCode  # noqa: E402
from auth_actions_server.services.issuer import CodeIssuer  # noqa: E402
from auth_actions_server.services.verifier import CodeVerifier  # noqa: E402


@pytest.fixture
def anyio_backend():
    return "asyncio"


class FrozenClock:
    """Callable clock the tests move by hand."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeIdentity:
    """In-memory stand-in for the Supabase identity provider."""

    def __init__(self) -> None:
        self.users: dict[str, dict] = {}
        self.confirmed: set[str] = set()
        self.passwords: dict[str, list[str]] = {}
        self.fail_mutations = False

    def add_user(self, email: str) -> str:
        user_id = f"user-{len(self.users) + 1}"
        self.users[email] = {"id": user_id, "email": email, "user_metadata": {}}
        return user_id

    async def create_user(self, email, password, metadata=None):
        if email in self.users:
            raise DependencyError("A user with this email address has already been registered")
        user_id = self.add_user(email)
        self.users[email]["user_metadata"] = metadata or {}
        self.passwords[user_id] = [password]
        return self.users[email]

    async def find_user_id(self, email):
        user = self.users.get(email)
        return user["id"] if user else None

    async def confirm_user(self, user_id):
        if self.fail_mutations:
            raise DependencyError("Identity provider unavailable")
        self.confirmed.add(user_id)

    async def set_password(self, user_id, password):
        if self.fail_mutations:
            raise DependencyError("Identity provider unavailable")
        self.passwords.setdefault(user_id, []).append(password)


class FakeMailer:
    """Records outgoing mail instead of talking to SMTP."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, str]] = []
        self.configured = True

    async def send(self, to, subject, html):
        if not self.configured:
            raise ConfigurationError("Server misconfiguration: Missing email credentials.")
        self.sent.append((to, subject, html))


@pytest.fixture
def test_settings() -> Settings:
    return Settings(gmail_user="sender@example.com", gmail_app_password="app-password", code_ttl_minutes=15)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def identity() -> FakeIdentity:
    return FakeIdentity()


@pytest.fixture
def mailer() -> FakeMailer:
    return FakeMailer()


@pytest.fixture
async def session_maker(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'codes.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    await engine.dispose()


@pytest.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def issuer(db, test_settings, mailer, identity, clock) -> CodeIssuer:
    return CodeIssuer(db, test_settings, mailer, identity, clock)


@pytest.fixture
def verifier(db, identity, clock) -> CodeVerifier:
    return CodeVerifier(db, identity, clock)


@pytest.fixture
def rows(session_maker):
    """Read all code rows through a fresh session."""

    async def _rows(**filters) -> list[VerificationCode]:
        async with session_maker() as session:
            stmt = select(VerificationCode).filter_by(**filters).order_by(VerificationCode.id)
            result = await session.execute(stmt)
            return list(result.scalars().all())

    return _rows


@pytest.fixture
async def client(session_maker, test_settings, mailer, identity, clock):
    async def override_get_db():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def override_get_issuer(session: AsyncSession = Depends(get_db)):
        return CodeIssuer(session, test_settings, mailer, identity, clock)

    async def override_get_verifier(session: AsyncSession = Depends(get_db)):
        return CodeVerifier(session, identity, clock)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_issuer] = override_get_issuer
    app.dependency_overrides[get_verifier] = override_get_verifier
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
