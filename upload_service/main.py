from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from upload_service.blob_store import LocalBlobStore
from upload_service.config import get_settings
from upload_service.logging_config import get_logger, set_log_level
from upload_service.orchestrator import UploadOrchestrator
from upload_service.registry_client import RegistryClient
from upload_service.routers import uploads as uploads_router

logger = get_logger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    set_log_level(settings.LOG_LEVEL)
    logger.info("Upload Service starting up...")
    settings.BLOB_STORAGE_PATH.mkdir(parents=True, exist_ok=True)
    logger.info(f"Blob storage path configured at: {settings.BLOB_STORAGE_PATH}")
    logger.info(f"Registry URL: {settings.REGISTRY_URL}")

    http_client = httpx.AsyncClient(timeout=settings.REGISTRY_TIMEOUT_SECONDS)
    blob_store = LocalBlobStore(settings.BLOB_STORAGE_PATH, settings.BLOB_PUBLIC_BASE_URL, settings.UPLOAD_CHUNK_SIZE)
    app.state.http_client = http_client
    app.state.blob_store = blob_store
    app.state.orchestrator = UploadOrchestrator(
        blob_store=blob_store,
        registry_client=RegistryClient(settings.REGISTRY_URL, http_client),
        allowed_types=settings.ALLOWED_TYPES,
        max_size_bytes=settings.MAX_FILE_SIZE_BYTES,
        owner_collection=settings.OWNER_COLLECTION,
    )
    try:
        yield
    finally:
        logger.info("Upload Service shutting down...")
        await http_client.aclose()

app = FastAPI(
    title="Domex Upload Service",
    version="0.1.0",
    lifespan=lifespan
)

app.include_router(uploads_router.router)

@app.get("/ping", tags=["Health"])
async def ping():
    return {"ping": "pong! from uploads"}

@app.get("/", tags=["Root"])
async def read_root():
    return {"message": "Domex Upload Service. POST files to /owners/{owner_key}/uploads."}

if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    logger.info(f"Starting upload service on {settings.UPLOAD_HOST}:{settings.UPLOAD_PORT}")
    uvicorn.run(app, host=settings.UPLOAD_HOST, port=settings.UPLOAD_PORT)
