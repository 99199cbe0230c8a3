import sys
from pathlib import Path

project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from typing import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient

from registry_service.database import Database
from registry_service.main import app as registry_app
from upload_service.blob_store import LocalBlobStore
from upload_service.main import app as upload_app
from upload_service.orchestrator import UploadOrchestrator
from upload_service.registry_client import RegistryClient
from upload_service.routers.uploads import get_blob_store, get_orchestrator

MB = 1024 * 1024
REGISTRY_BASE_URL = "http://registry.test"
UPLOADS_BASE_URL = "http://uploads.test"

class RecordingBlobStore(LocalBlobStore):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.writes = []

    def write(self, path, content, total_bytes):
        self.writes.append(path)
        return super().write(path, content, total_bytes)

@pytest.fixture(scope="function")
def blob_store(tmp_path) -> RecordingBlobStore:
    return RecordingBlobStore(tmp_path / "blobs", UPLOADS_BASE_URL, chunk_size=256 * 1024)

@pytest_asyncio.fixture(scope="function")
async def registry_database() -> AsyncGenerator[Database, None]:
    database = Database("sqlite+aiosqlite:///:memory:")
    await database.init()
    registry_app.state.database = database
    yield database
    await database.close()
    del registry_app.state.database

@pytest_asyncio.fixture(scope="function")
async def registry_http_client(registry_database: Database) -> AsyncGenerator[httpx.AsyncClient, None]:
    transport = httpx.ASGITransport(app=registry_app)
    async with httpx.AsyncClient(transport=transport, base_url=REGISTRY_BASE_URL) as client:
        yield client

@pytest.fixture(scope="function")
def registry_client(registry_http_client: httpx.AsyncClient) -> RegistryClient:
    return RegistryClient(REGISTRY_BASE_URL, registry_http_client)

@pytest.fixture(scope="function")
def make_orchestrator(blob_store: RecordingBlobStore, registry_client: RegistryClient):
    def factory(**overrides) -> UploadOrchestrator:
        options = dict(
            blob_store=blob_store,
            registry_client=registry_client,
            allowed_types=["image/*", "application/pdf"],
            max_size_bytes=10 * MB,
            owner_collection="domains",
        )
        options.update(overrides)
        return UploadOrchestrator(**options)
    return factory

@pytest.fixture(scope="function")
def orchestrator(make_orchestrator) -> UploadOrchestrator:
    return make_orchestrator()

@pytest_asyncio.fixture(scope="function")
async def async_client(
    orchestrator: UploadOrchestrator,
    blob_store: RecordingBlobStore
) -> AsyncGenerator[AsyncClient, None]:
    upload_app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    upload_app.dependency_overrides[get_blob_store] = lambda: blob_store

    async with AsyncClient(transport=httpx.ASGITransport(app=upload_app), base_url=UPLOADS_BASE_URL) as client:
        yield client

    upload_app.dependency_overrides.clear()
