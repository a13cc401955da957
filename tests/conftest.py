"""
Shared test configuration.

Settings are read at import time, so the environment is prepared before any
footiedrop module is imported. Every test gets a fresh in-memory SQLite
database and a recording notifier instead of SMTP.
"""

import os

os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("EMAIL_ENABLED", "false")

import re

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from footiedrop.core.config import settings
from footiedrop.core.security import hash_password
from footiedrop.db.init_db import create_schema
from footiedrop.models.settings import UserSettings
from footiedrop.models.user import User

PASSWORD = "secret123"
# bcrypt is slow on purpose; hash once per run
_PASSWORD_HASH = hash_password(PASSWORD)


@pytest.fixture
async def engine():
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_schema(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


class Outbox(list):
    """Messages captured in place of SMTP delivery."""

    def to(self, address: str) -> list[dict]:
        return [m for m in self if m["to"] == address]

    def last_otp(self, address: str) -> str:
        body = self.to(address)[-1]["body"]
        return re.search(r"code is (\d{4})", body).group(1)

    def last_reset_token(self, address: str) -> str:
        body = self.to(address)[-1]["body"]
        return re.search(r"/reset-password/([^\"]+)\"", body).group(1)


@pytest.fixture
def outbox(monkeypatch):
    box = Outbox()

    async def fake_send(from_tag, to_email, subject, body):
        box.append({"from": from_tag, "to": to_email, "subject": subject, "body": body})

    monkeypatch.setattr("footiedrop.services.email.send_email", fake_send)
    return box


@pytest.fixture
def strict_notify(monkeypatch):
    monkeypatch.setattr(settings, "NOTIFY_FAILURE_POLICY", "strict")


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    async def _make(email: str = "a@x.com", *, verified: bool = False, **overrides) -> User:
        counter["n"] += 1
        user = User(
            first_name=overrides.pop("first_name", "Ada"),
            last_name=overrides.pop("last_name", "Lovelace"),
            email=email,
            phone=overrides.pop("phone", f"+2348000000{counter['n']:03d}"),
            password_hash=_PASSWORD_HASH,
            settings=UserSettings(verified=verified),
            **overrides,
        )
        db.add(user)
        await db.commit()
        return user

    return _make
