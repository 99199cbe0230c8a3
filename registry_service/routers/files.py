import uuid
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from registry_service import crud, schemas
from registry_service.database import get_db
from registry_service.exceptions import InvalidRequestError, MissingFieldsError, NotFoundError
from registry_service.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(
    tags=["files"],
)

def _parse_file_id(file_id: str) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(file_id)
    except ValueError:
        return None

async def _get_active_or_404(db: AsyncSession, file_id: str):
    parsed_id = _parse_file_id(file_id)
    db_record = await crud.get_active_file_record(db, parsed_id) if parsed_id else None
    if db_record is None:
        logger.warning(f"Active file record not found: ID {file_id}")
        raise NotFoundError("File not found")
    return db_record

@router.post("/files", response_model=schemas.FileRecordCreated, status_code=201)
async def create_file(
    record: schemas.FileRecordCreate,
    db: AsyncSession = Depends(get_db)
):
    missing = record.missing_required_fields()
    if missing:
        logger.warning(f"Rejecting file record, missing fields: {missing}")
        raise MissingFieldsError(missing)

    logger.info(f"Registering file '{record.display_name}' for owner '{record.owner_key}'")
    db_record = await crud.create_file_record(db, record)
    logger.info(f"Saved file record '{db_record.display_name}' (ID: {db_record.id}) for owner '{db_record.owner_key}'.")
    return schemas.FileRecordCreated(id=db_record.id)

@router.get("/owners/{owner_key}/files", response_model=schemas.FileRecordList)
async def list_owner_files(
    owner_key: str,
    db: AsyncSession = Depends(get_db)
):
    logger.info(f"Listing files for owner '{owner_key}'")
    records = await crud.list_active_file_records(db, owner_key)
    logger.debug(f"Returning {len(records)} file(s) for owner '{owner_key}'")
    return schemas.FileRecordList(
        files=[schemas.FileRecordPublic.model_validate(r) for r in records],
        count=len(records),
    )

@router.get("/files/stats", response_model=schemas.FileStats)
async def get_file_stats(db: AsyncSession = Depends(get_db)):
    stats = await crud.get_file_stats(db)
    logger.debug(f"File stats: {stats.total_files} files, {stats.total_size} bytes")
    return stats

@router.get("/files/{file_id}", response_model=schemas.FileRecordPublic)
async def get_file(
    file_id: str,
    db: AsyncSession = Depends(get_db)
):
    return await _get_active_or_404(db, file_id)

@router.put("/files/{file_id}", response_model=schemas.FileRecordPublic)
async def update_file(
    file_id: str,
    update: schemas.FileRecordUpdate,
    db: AsyncSession = Depends(get_db)
):
    if not update.model_fields_set:
        raise InvalidRequestError("No updatable fields supplied (displayName, tags, isPublic)")
    db_record = await _get_active_or_404(db, file_id)
    updated = await crud.update_file_record(db, db_record, update)
    logger.info(f"Updated file record {file_id}: {sorted(update.model_fields_set)}")
    return updated

@router.delete("/files/{file_id}", response_model=schemas.Acknowledgement)
async def delete_file(
    file_id: str,
    db: AsyncSession = Depends(get_db)
):
    db_record = await _get_active_or_404(db, file_id)
    await crud.soft_delete_file_record(db, db_record)
    logger.info(f"Soft-deleted file record {file_id} (blob left at '{db_record.storage_path}')")
    return schemas.Acknowledgement(message="File deleted successfully")
