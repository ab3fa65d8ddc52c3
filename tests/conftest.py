# /tests/conftest.py

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from assessor.db.base import Base
from assessor.db.session import get_db
from assessor.main import app
from assessor.services.llm import get_llm_gateway


class FakeGateway:
    """Scripted stand-in for the Gemini gateway. Replies are consumed in order."""

    def __init__(self):
        self.replies = []
        self.prompts = []

    def queue(self, *replies):
        self.replies.extend(replies)

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.replies:
            raise AssertionError("unexpected LLM call")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
async def engine():
    """A fresh in-memory database per test, shared by every session."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
async def client(session_factory, gateway):
    async def override_get_db():
        async with session_factory() as db:
            yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_llm_gateway] = lambda: gateway
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac
    app.dependency_overrides.clear()


async def register_and_login(client, username="alice", email="a@x.com", password="pw123456"):
    """Returns (user dict from /login, bearer headers)."""
    r = await client.post("/register", json={"username": username, "email": email, "password": password})
    assert r.status_code == 201, r.text
    r = await client.post("/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    data = r.json()
    return data["user"], {"Authorization": f"Bearer {data['token']}"}


@pytest.fixture
async def alice(client):
    return await register_and_login(client)
