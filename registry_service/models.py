import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, JSON, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base

Base = declarative_base()

def utcnow() -> datetime:
    # stored naive, always UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)

class FileRecord(Base):
    __tablename__ = "file_records"
    __table_args__ = (
        UniqueConstraint("owner_key", "stored_name", name="uq_file_records_owner_stored_name"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_key = Column(String, nullable=False, index=True)
    display_name = Column(String, nullable=False)
    original_name = Column(String, nullable=True)
    stored_name = Column(String, nullable=False)
    size_bytes = Column(Integer, nullable=False, default=0)
    mime_type = Column(String, nullable=True)
    storage_path = Column(String, nullable=True)
    fetch_url = Column(String, nullable=False)
    uploaded_at = Column(DateTime, default=utcnow, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    tags = Column(JSON, nullable=True)
    is_public = Column(Boolean, nullable=True)
    deleted_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<FileRecord(id={self.id}, owner='{self.owner_key}', name='{self.display_name}', active={self.is_active})>"

class DomainListing(Base):
    __tablename__ = "domains"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False, unique=True, index=True)
    status = Column(String, nullable=False, default="active")
    highest_bid = Column(Float, nullable=False, default=0.0)
    currency = Column(String, nullable=False, default="ETH")
    time_remaining = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    def __repr__(self):
        return f"<DomainListing(id={self.id}, name='{self.name}', status='{self.status}')>"
