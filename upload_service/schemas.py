from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

@dataclass
class UploadCandidate:
    """A file offered for upload.

    ``content`` is ``bytes``, an async iterable of ``bytes`` chunks, or any
    object with a (sync or async) ``read(size)`` method such as FastAPI's
    ``UploadFile``.
    """

    content: Any
    declared_name: str
    declared_mime_type: str
    size_bytes: int

    def __post_init__(self):
        if self.size_bytes < 0:
            raise ValueError("size_bytes must be >= 0")

class FileRecordPayload(CamelModel):
    owner_key: str
    display_name: str
    original_name: str
    stored_name: str
    size_bytes: int
    mime_type: str
    storage_path: str
    fetch_url: str
    uploaded_at: datetime

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

class UploadResult(CamelModel):
    id: str
    success: bool = True
    file_metadata: FileRecordPayload
    registry_response: Dict[str, Any] = Field(default_factory=dict, exclude=True)
