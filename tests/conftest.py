import os

os.environ.setdefault("DB_CONN_STRING", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENABLE_RATE_LIMITING", "false")

import pytest_asyncio
from asgi_lifespan import LifespanManager
from httpx import ASGITransport, AsyncClient

from main import app
from servicedesk.core.repositories.models import Base
from servicedesk.infrastructure.database import SessionLocal, engine


@pytest_asyncio.fixture(autouse=True)
async def app_lifespan():
    async with LifespanManager(app):
        yield


@pytest_asyncio.fixture(autouse=True)
async def db_setup(app_lifespan):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db():
    async with SessionLocal() as session:
        yield session


@pytest_asyncio.fixture
async def client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
