import re
import threading
import time
import uuid as py_uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from registry_service import models, schemas
from registry_service.exceptions import ConflictError

_UNSAFE_NAME_CHARS = re.compile(r"[^a-zA-Z0-9.-]")

_timestamp_lock = threading.Lock()
_last_timestamp_ms = 0

def sanitize_name(name: str) -> str:
    return _UNSAFE_NAME_CHARS.sub("_", name)

def next_timestamp_ms() -> int:
    """Millisecond wall clock, strictly increasing within the process."""
    global _last_timestamp_ms
    with _timestamp_lock:
        now = int(time.time() * 1000)
        if now <= _last_timestamp_ms:
            now = _last_timestamp_ms + 1
        _last_timestamp_ms = now
        return now

def derive_stored_name(owner_key: str, display_name: str) -> str:
    return f"{owner_key}_{next_timestamp_ms()}_{sanitize_name(display_name)}"

def _as_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)

async def create_file_record(db: AsyncSession, record: schemas.FileRecordCreate, owner_collection: str = "domains") -> models.FileRecord:
    stored_name = record.stored_name or derive_stored_name(record.owner_key, record.display_name)
    db_record = models.FileRecord(
        owner_key=record.owner_key,
        display_name=record.display_name,
        original_name=record.original_name or record.display_name,
        stored_name=stored_name,
        size_bytes=record.size_bytes,
        mime_type=record.mime_type,
        storage_path=record.storage_path or f"{owner_collection}/{record.owner_key}/{stored_name}",
        fetch_url=record.fetch_url,
        uploaded_at=_as_naive_utc(record.uploaded_at) or models.utcnow(),
        created_at=models.utcnow(),
        is_active=True,
        tags=record.tags,
        is_public=record.is_public,
    )
    db.add(db_record)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ConflictError(f"Stored name '{stored_name}' is already registered for owner '{record.owner_key}'") from e
    await db.refresh(db_record)
    return db_record

async def get_active_file_record(db: AsyncSession, file_id: py_uuid.UUID) -> Optional[models.FileRecord]:
    result = await db.execute(
        select(models.FileRecord).filter(models.FileRecord.id == file_id, models.FileRecord.is_active.is_(True))
    )
    return result.scalars().first()

async def list_active_file_records(db: AsyncSession, owner_key: str) -> List[models.FileRecord]:
    result = await db.execute(
        select(models.FileRecord)
        .filter(models.FileRecord.owner_key == owner_key, models.FileRecord.is_active.is_(True))
        .order_by(models.FileRecord.uploaded_at.desc(), models.FileRecord.created_at.desc())
    )
    return list(result.scalars().all())

async def update_file_record(
    db: AsyncSession,
    db_obj: Optional[models.FileRecord],
    obj_in: schemas.FileRecordUpdate
) -> Optional[models.FileRecord]:
    if db_obj is None:
        return None

    update_data = obj_in.model_dump(exclude_unset=True)
    if update_data.get("display_name") is None:
        update_data.pop("display_name", None)
    for field, value in update_data.items():
        setattr(db_obj, field, value)
    db_obj.updated_at = models.utcnow()

    await db.commit()
    await db.refresh(db_obj)
    return db_obj

async def soft_delete_file_record(db: AsyncSession, db_obj: Optional[models.FileRecord]) -> Optional[models.FileRecord]:
    if db_obj is None:
        return None
    db_obj.is_active = False
    db_obj.deleted_at = models.utcnow()
    await db.commit()
    await db.refresh(db_obj)
    return db_obj

async def get_file_stats(db: AsyncSession) -> schemas.FileStats:
    totals = await db.execute(
        select(func.count(models.FileRecord.id), func.coalesce(func.sum(models.FileRecord.size_bytes), 0))
        .filter(models.FileRecord.is_active.is_(True))
    )
    total_files, total_size = totals.one()
    types = await db.execute(
        select(models.FileRecord.mime_type)
        .filter(models.FileRecord.is_active.is_(True), models.FileRecord.mime_type.is_not(None))
        .distinct()
        .order_by(models.FileRecord.mime_type)
    )
    return schemas.FileStats(
        total_files=total_files or 0,
        total_size=int(total_size or 0),
        file_types=list(types.scalars().all()),
    )

async def list_domains(db: AsyncSession, limit: int, skip: int = 0) -> List[models.DomainListing]:
    result = await db.execute(
        select(models.DomainListing)
        .order_by(models.DomainListing.created_at, models.DomainListing.name)
        .offset(skip)
        .limit(limit)
    )
    return list(result.scalars().all())

async def get_domain_by_name(db: AsyncSession, name: str) -> Optional[models.DomainListing]:
    result = await db.execute(select(models.DomainListing).filter(models.DomainListing.name == name.lower()))
    return result.scalars().first()

async def create_domain(db: AsyncSession, domain: schemas.DomainCreate) -> models.DomainListing:
    db_domain = models.DomainListing(
        name=domain.name,
        status=domain.status,
        highest_bid=domain.highest_bid,
        currency=domain.currency,
        time_remaining=domain.time_remaining,
    )
    db.add(db_domain)
    await db.commit()
    await db.refresh(db_domain)
    return db_domain
