"""Test fixtures — a fresh in-memory database per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Each test gets its own in-memory SQLite engine (StaticPool, so every
   session shares the one connection) with the schema created from models.
2. Each HTTP request gets its own session from that engine, exactly like
   production, so uncommitted work from a failed request is discarded.
3. The mail dispatcher is replaced by RecordingMailer, which keeps every
   message so tests can pull the confirmation link out of it.
"""

import html
import os
import re
import uuid
from dataclasses import dataclass
from urllib.parse import parse_qs, urlparse

# Settings are read at import time — configure before importing the app.
os.environ["STOREFRONT_DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["STOREFRONT_JWT_SECRET"] = "test-secret-0123456789abcdef0123456789abcdef"
os.environ["STOREFRONT_MAIL_BACKEND"] = "console"
os.environ["STOREFRONT_PUBLIC_BASE_URL"] = "http://test"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from storefront.auth.jwt import issue_token
from storefront.db.engine import get_db
from storefront.db.models import Base, User
from storefront.main import app
from storefront.services.mail import MailDispatcher, get_mailer

_HREF_RE = re.compile(r"href='([^']+)'")


@dataclass
class SentMail:
    to: str
    subject: str
    html_body: str


class RecordingMailer(MailDispatcher):
    """Keeps sent mail in memory. Set `fail = True` to simulate an outage."""

    def __init__(self):
        self.sent: list[SentMail] = []
        self.fail = False

    async def send(self, to_address: str, subject: str, html_body: str) -> None:
        if self.fail:
            raise ConnectionRefusedError("SMTP relay unreachable")
        self.sent.append(SentMail(to_address, subject, html_body))

    def last_link(self) -> str:
        match = _HREF_RE.search(self.sent[-1].html_body)
        assert match, "no confirmation link in the last mail"
        return html.unescape(match.group(1))

    def last_confirmation(self) -> tuple[str, str]:
        """(userId, code) from the most recent confirmation link."""
        query = parse_qs(urlparse(self.last_link()).query)
        return query["userId"][0], query["code"][0]


@pytest_asyncio.fixture()
async def engine():
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield eng
    finally:
        await eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture()
async def db_session(session_factory):
    """A session for service-level tests (no HTTP)."""
    async with session_factory() as session:
        yield session


@pytest.fixture()
def mailer():
    return RecordingMailer()


@pytest_asyncio.fixture()
async def client(session_factory, mailer):
    """HTTP client with the app's get_db and get_mailer overridden."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mailer] = lambda: mailer

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture()
def auth_headers():
    """Bearer header for a signed-in user, without going through the flow."""
    user = User(id=uuid.uuid4(), email="staff@example.com")
    return {"Authorization": f"Bearer {issue_token(user)}"}
