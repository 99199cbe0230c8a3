import sys
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError, OperationalError

from registry_service.config import get_settings
from registry_service.database import Database
from registry_service.exceptions import ConfigurationError, RegistryError, StoreUnavailableError
from registry_service.logging_config import get_logger, set_log_level
from registry_service.routers import domains as domains_router
from registry_service.routers import files as files_router
from registry_service.routers import insights as insights_router

logger = get_logger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Registry Service starting up...")
    settings = get_settings()
    set_log_level(settings.LOG_LEVEL)
    database = Database.from_settings(settings)
    await database.init()
    app.state.database = database
    app.state.http_client = httpx.AsyncClient(timeout=settings.AI_TIMEOUT_SECONDS)
    logger.info(f"AI text endpoints {'enabled' if settings.AI_API_KEY else 'disabled (AI_API_KEY not set)'}")
    try:
        yield
    finally:
        logger.info("Registry Service shutting down...")
        await app.state.http_client.aclose()
        await database.close()

app = FastAPI(
    title="Domex Asset Registry",
    version="0.1.0",
    lifespan=lifespan
)

@app.exception_handler(RegistryError)
async def registry_error_handler(request: Request, exc: RegistryError):
    return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})

@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Malformed request to {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})

@app.exception_handler(DBAPIError)
async def store_unavailable_handler(request: Request, exc: DBAPIError):
    if exc.connection_invalidated or isinstance(exc, OperationalError):
        logger.error(f"Metadata store unavailable while handling {request.url.path}: {exc.orig}")
        return await registry_error_handler(request, StoreUnavailableError("Metadata store unavailable"))
    logger.error(f"Database error while handling {request.url.path}: {exc.orig}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})

@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error while handling {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})

app.include_router(files_router.router)
app.include_router(domains_router.router)
app.include_router(insights_router.router)

@app.get("/ping", tags=["Health"])
async def ping():
    return {"ping": "pong! from registry"}

@app.get("/", tags=["Root"])
async def read_root():
    return {"message": "Domex Asset Registry. See /domains and /files/stats."}

def run():
    try:
        settings = get_settings()
    except ConfigurationError as e:
        logger.critical(f"Startup aborted: {e}")
        sys.exit(1)

    import uvicorn
    logger.info(f"Starting registry on {settings.REGISTRY_HOST}:{settings.REGISTRY_PORT}")
    uvicorn.run(app, host=settings.REGISTRY_HOST, port=settings.REGISTRY_PORT)

if __name__ == "__main__":
    run()
