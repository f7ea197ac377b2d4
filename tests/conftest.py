"""
Pytest fixtures for MilkWay tests.
Uses SQLite in-memory for unit tests (no PostGIS required); the nearby
filter runs through the haversine fallback.
"""
import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["POSTGIS_ENABLED"] = "false"
os.environ["APP_ENV"] = "development"

import json  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

from milkway.config import settings  # noqa: E402
from milkway.database import Base, get_db  # noqa: E402
from milkway.main import app  # noqa: E402

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"

# Smallest valid PNG header; content is never decoded
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine(TEST_DB_URL, echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def db(engine):
    factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    async with factory() as session:
        yield session


@pytest.fixture(autouse=True)
def upload_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "UPLOAD_DIR", tmp_path / "uploads")
    return tmp_path / "uploads"


@pytest_asyncio.fixture
async def client(db):
    async def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# --------------------------------------------------------------------------- #
#  Helpers                                                                     #
# --------------------------------------------------------------------------- #


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


async def register(client: AsyncClient, role: str, email: str, name: str = "Test User") -> dict:
    resp = await client.post(
        "/api/auth/register",
        json={"name": name, "email": email, "password": "secret123", "role": role},
    )
    assert resp.status_code == 201, resp.text
    body = resp.json()
    return {"token": body["token"], "user": body["user"], "headers": auth_headers(body["token"])}


def farm_form(**overrides) -> dict:
    """Multipart form fields for a farm, JSON fields already encoded."""
    fields = {
        "name": "Green Pastures Dairy",
        "description": "Fresh cow milk from grass-fed cattle",
        "price": 60,
        "location": {
            "address": "12 Lake Road",
            "city": "Pune",
            "state": "Maharashtra",
            "coordinates": {"lat": 18.5204, "lng": 73.8567},
        },
        "contact": {"phone": "+91 98765 43210", "email": ""},
        "availability": ["morning"],
        "features": ["organic"],
    }
    fields.update(overrides)
    return {
        key: json.dumps(value) if isinstance(value, (dict, list)) else str(value)
        for key, value in fields.items()
    }


async def create_farm(client: AsyncClient, headers: dict, files=None, **overrides) -> dict:
    resp = await client.post(
        "/api/farms", data=farm_form(**overrides), files=files, headers=headers
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["farm"]


@pytest_asyncio.fixture
async def farmer(client):
    return await register(client, "farmer", "farmer@example.com", "Ravi Patil")


@pytest_asyncio.fixture
async def buyer(client):
    return await register(client, "buyer", "buyer@example.com", "Asha Rao")


@pytest_asyncio.fixture
async def second_buyer(client):
    return await register(client, "buyer", "buyer2@example.com", "Meera Shah")
