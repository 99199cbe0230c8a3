import uuid
from datetime import datetime
from typing import Annotated, List, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

def _normalise_tags(v: List[str]) -> List[str]:
    seen = []
    for tag in v:
        tag = tag.strip()
        if tag and tag not in seen:
            seen.append(tag)
    return seen

TagList = Annotated[List[str], AfterValidator(_normalise_tags)]

class FileRecordCreate(CamelModel):
    owner_key: Optional[str] = None
    display_name: Optional[str] = None
    fetch_url: Optional[str] = None
    original_name: Optional[str] = None
    stored_name: Optional[str] = None
    size_bytes: int = Field(0, ge=0)
    mime_type: Optional[str] = None
    storage_path: Optional[str] = None
    uploaded_at: Optional[datetime] = None
    tags: Optional[TagList] = None
    is_public: Optional[bool] = None

    def missing_required_fields(self) -> List[str]:
        required = {"ownerKey": self.owner_key, "displayName": self.display_name, "fetchUrl": self.fetch_url}
        return [name for name, value in required.items() if value is None or not value.strip()]

class FileRecordCreated(CamelModel):
    id: uuid.UUID
    success: bool = True

class FileRecordUpdate(CamelModel):
    display_name: Optional[str] = None
    tags: Optional[TagList] = None
    is_public: Optional[bool] = None

    @field_validator('display_name')
    @classmethod
    def display_name_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("displayName must not be blank")
        return v

class FileRecordPublic(CamelModel):
    id: uuid.UUID
    owner_key: str
    display_name: str
    original_name: Optional[str] = None
    stored_name: str
    size_bytes: int
    mime_type: Optional[str] = None
    storage_path: Optional[str] = None
    fetch_url: str
    uploaded_at: datetime
    created_at: datetime
    is_active: bool
    tags: Optional[List[str]] = None
    is_public: Optional[bool] = None
    deleted_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class FileRecordList(CamelModel):
    success: bool = True
    files: List[FileRecordPublic]
    count: int

class FileStats(CamelModel):
    total_files: int = 0
    total_size: int = 0
    file_types: List[str] = Field(default_factory=list)

class Acknowledgement(CamelModel):
    success: bool = True
    message: str

class DomainCreate(CamelModel):
    name: str = Field(..., min_length=1)
    status: str = "active"
    highest_bid: float = Field(0.0, ge=0)
    currency: str = "ETH"
    time_remaining: Optional[str] = None

    @field_validator('name')
    @classmethod
    def normalise_name(cls, v: str) -> str:
        v = v.strip().lower()
        if not v:
            raise ValueError("name must not be blank")
        return v

class DomainPublic(CamelModel):
    id: uuid.UUID
    name: str
    status: str
    highest_bid: float
    currency: str
    time_remaining: Optional[str] = None

class DomainValuation(CamelModel):
    domain: str
    valuation: str
    generated_at: datetime

class DomainDescription(CamelModel):
    domain: str
    description: str
    current_bid: Optional[float] = None
    generated_at: datetime

class MarketAnalysis(CamelModel):
    analysis: str
    domains_considered: int
    generated_at: datetime
