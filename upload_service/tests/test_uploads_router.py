import asyncio
import io

import pytest
from httpx import AsyncClient

from upload_service.schemas import UploadCandidate

@pytest.mark.asyncio
async def test_ping_uploads(async_client: AsyncClient):
    response = await async_client.get("/ping")
    assert response.status_code == 200
    assert response.json() == {"ping": "pong! from uploads"}

@pytest.mark.asyncio
async def test_upload_registers_file_and_serves_blob(async_client: AsyncClient, registry_client):
    content = b"\x89PNG fake image bytes"
    files = {"file": ("logo.png", io.BytesIO(content), "image/png")}

    response = await async_client.post("/owners/domain-7/uploads", files=files)

    assert response.status_code == 201, response.text
    data = response.json()
    assert data["success"] is True
    metadata = data["fileMetadata"]
    assert metadata["ownerKey"] == "domain-7"
    assert metadata["sizeBytes"] == len(content)
    assert metadata["mimeType"] == "image/png"
    assert "registryResponse" not in data

    listed = await registry_client.list_files("domain-7")
    assert [f["id"] for f in listed] == [data["id"]]

    download = await async_client.get(metadata["fetchUrl"])
    assert download.status_code == 200
    assert download.content == content

@pytest.mark.asyncio
async def test_upload_with_several_files_keeps_only_first(async_client: AsyncClient, registry_client):
    files = [
        ("file", ("first.png", io.BytesIO(b"one"), "image/png")),
        ("file", ("second.png", io.BytesIO(b"two"), "image/png")),
    ]

    response = await async_client.post("/owners/domain-7/uploads", files=files)

    assert response.status_code == 201
    listed = await registry_client.list_files("domain-7")
    assert [f["displayName"] for f in listed] == ["first.png"]

@pytest.mark.asyncio
async def test_upload_disallowed_type_returns_400(async_client: AsyncClient, blob_store):
    files = {"file": ("notes.txt", io.BytesIO(b"hello"), "text/plain")}

    response = await async_client.post("/owners/domain-7/uploads", files=files)

    assert response.status_code == 400
    assert "not allowed" in response.json()["detail"]
    assert blob_store.writes == []

@pytest.mark.asyncio
async def test_upload_while_owner_busy_returns_409(async_client: AsyncClient, orchestrator):
    gate = asyncio.Event()

    async def chunks():
        yield b"a"
        await gate.wait()
        yield b"b"

    in_flight = orchestrator.upload(
        "domain-7", UploadCandidate(content=chunks(), declared_name="a.png", declared_mime_type="image/png", size_bytes=2)
    )

    response = await async_client.post(
        "/owners/domain-7/uploads", files={"file": ("b.png", io.BytesIO(b"b"), "image/png")}
    )
    assert response.status_code == 409

    gate.set()
    await in_flight.result()

@pytest.mark.asyncio
async def test_download_missing_blob_returns_404(async_client: AsyncClient):
    response = await async_client.get("/blobs/domains/domain-7/nothing.png")
    assert response.status_code == 404

@pytest.mark.asyncio
async def test_download_rejects_path_traversal(async_client: AsyncClient):
    response = await async_client.get("/blobs/..%2F..%2Fetc%2Fpasswd")
    assert response.status_code == 400
