import os
import sys
from pathlib import Path

project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from typing import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker

from registry_service.ai_client import get_http_client
from registry_service.config import Settings, get_settings, reset_settings_cache
from registry_service.database import get_db
from registry_service.main import app
from registry_service.models import Base

MOCK_AI_URL = "http://mockai.test/v1/messages"

@pytest.fixture(scope="function")
def test_settings() -> Settings:
    return Settings(
        DATABASE_URL="sqlite+aiosqlite:///:memory:",
        AI_API_URL=MOCK_AI_URL,
        AI_API_KEY="test-key",
        AI_MODEL="test-model",
        AI_TIMEOUT_SECONDS=5.0,
    )

@pytest.fixture(autouse=True)
def clear_settings_cache():
    reset_settings_cache()
    yield
    reset_settings_cache()

@pytest_asyncio.fixture(scope="function")
async def test_engine():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()

@pytest_asyncio.fixture(scope="function")
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    TestingSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, expire_on_commit=False, bind=test_engine, class_=AsyncSession
    )
    async with TestingSessionLocal() as session:
        yield session
        await session.rollback()

@pytest_asyncio.fixture(scope="function")
async def outgoing_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient() as client:
        yield client

@pytest_asyncio.fixture(scope="function")
async def async_client(
    db_session: AsyncSession,
    outgoing_client: httpx.AsyncClient,
    test_settings: Settings
) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_http_client] = lambda: outgoing_client

    transport = httpx.ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testregistry") as client:
        yield client

    app.dependency_overrides.clear()

def build_file_payload(owner_key: str = "domain-1", display_name: str = "logo.png", **overrides) -> dict:
    payload = {
        "ownerKey": owner_key,
        "displayName": display_name,
        "originalName": display_name,
        "storedName": f"{owner_key}_1700000000000_{display_name}",
        "sizeBytes": 2048,
        "mimeType": "image/png",
        "storagePath": f"domains/{owner_key}/{owner_key}_1700000000000_{display_name}",
        "fetchUrl": f"http://blobs.test/blobs/domains/{owner_key}/{display_name}",
        "uploadedAt": "2024-05-01T10:00:00Z",
    }
    payload.update(overrides)
    return payload

@pytest.fixture
def file_payload():
    return build_file_payload
