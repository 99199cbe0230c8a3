import os
from typing import List

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile
from fastapi.responses import FileResponse

from upload_service.blob_store import LocalBlobStore
from upload_service.exceptions import InvalidBlobPathError, UploadError
from upload_service.logging_config import get_logger
from upload_service.orchestrator import UploadOrchestrator
from upload_service.schemas import UploadCandidate, UploadResult

logger = get_logger(__name__)

router = APIRouter(
    tags=["uploads"],
)

def get_orchestrator(request: Request) -> UploadOrchestrator:
    return request.app.state.orchestrator

def get_blob_store(request: Request) -> LocalBlobStore:
    return request.app.state.blob_store

def _declared_size(upload: UploadFile) -> int:
    if upload.size is not None:
        return upload.size
    upload.file.seek(0, os.SEEK_END)
    size = upload.file.tell()
    upload.file.seek(0)
    return size

@router.post("/owners/{owner_key}/uploads", response_model=UploadResult, status_code=201)
async def upload_owner_file(
    owner_key: str,
    file: List[UploadFile] = File(...),
    orchestrator: UploadOrchestrator = Depends(get_orchestrator)
):
    logger.info(f"Upload request for owner '{owner_key}': {[f.filename for f in file]}")
    candidates = [
        UploadCandidate(
            content=upload,
            declared_name=upload.filename or "upload",
            declared_mime_type=upload.content_type or "application/octet-stream",
            size_bytes=_declared_size(upload),
        )
        for upload in file
    ]
    try:
        task = orchestrator.upload_first(owner_key, candidates)
        async for percent in task:
            logger.debug(f"Upload for '{owner_key}' at {percent:.1f}%")
        return await task.result()
    except UploadError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    finally:
        for upload in file:
            await upload.close()

@router.get("/blobs/{blob_path:path}")
async def download_blob(
    blob_path: str,
    blob_store: LocalBlobStore = Depends(get_blob_store)
):
    try:
        file_path_on_disk = blob_store.resolve(blob_path)
    except InvalidBlobPathError as e:
        logger.warning(f"Rejected blob path: {blob_path}")
        raise HTTPException(status_code=400, detail=str(e))

    if not file_path_on_disk.is_file():
        logger.warning(f"Blob not found: {blob_path}")
        raise HTTPException(status_code=404, detail="File not found")

    return FileResponse(path=file_path_on_disk, filename=file_path_on_disk.name)
