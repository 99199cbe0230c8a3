import inspect
import re
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, AsyncIterator
from urllib.parse import quote

import aiofiles

from upload_service.exceptions import InvalidBlobPathError, TransferError
from upload_service.logging_config import get_logger

logger = get_logger(__name__)

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

def build_stored_name(owner_key: str, display_name: str) -> str:
    return f"{owner_key}_{next_timestamp_ms()}_{sanitize_name(display_name)}"

def build_storage_path(owner_collection: str, owner_key: str, stored_name: str) -> str:
    return f"{owner_collection}/{owner_key}/{stored_name}"

@dataclass(frozen=True)
class TransferProgress:
    bytes_transferred: int
    total_bytes: int

    @property
    def percent(self) -> float:
        if self.total_bytes <= 0:
            return 100.0
        return max(0.0, min(100.0, self.bytes_transferred / self.total_bytes * 100))

async def iter_chunks(content: Any, chunk_size: int) -> AsyncIterator[bytes]:
    if isinstance(content, (bytes, bytearray, memoryview)):
        data = bytes(content)
        for start in range(0, len(data), chunk_size):
            yield data[start:start + chunk_size]
    elif hasattr(content, "read"):
        while True:
            chunk = content.read(chunk_size)
            if inspect.isawaitable(chunk):
                chunk = await chunk
            if not chunk:
                break
            yield chunk
    else:
        async for chunk in content:
            if chunk:
                yield chunk

class BlobStore(ABC):
    """Durable byte storage addressed by slash-separated paths."""

    @abstractmethod
    def write(self, path: str, content: Any, total_bytes: int) -> AsyncIterator[TransferProgress]:
        """Store ``content`` at ``path``, yielding progress after every chunk."""

    @abstractmethod
    async def get_fetch_url(self, path: str) -> str:
        ...

class LocalBlobStore(BlobStore):
    def __init__(self, base_path: Path, public_base_url: str, chunk_size: int = 256 * 1024):
        self.base_path = Path(base_path)
        self.public_base_url = public_base_url.rstrip("/")
        self.chunk_size = chunk_size

    def resolve(self, path: str) -> Path:
        base = self.base_path.resolve()
        target = (base / path).resolve()
        if target == base or base not in target.parents:
            raise InvalidBlobPathError(f"Invalid blob path: {path}")
        return target

    async def write(self, path: str, content: Any, total_bytes: int) -> AsyncIterator[TransferProgress]:
        target = self.resolve(path)
        logger.info(f"Writing blob '{path}' ({total_bytes} bytes) to {target}")
        transferred = 0
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            if total_bytes > 0:
                yield TransferProgress(0, total_bytes)
            async with aiofiles.open(target, "wb") as out_file:
                async for chunk in iter_chunks(content, self.chunk_size):
                    transferred += len(chunk)
                    if transferred > total_bytes:
                        raise TransferError(
                            f"Upload failed: received more than the declared {total_bytes} bytes for '{path}'"
                        )
                    await out_file.write(chunk)
                    yield TransferProgress(transferred, total_bytes)
        except OSError as e:
            logger.error(f"Blob store write failed for '{path}': {str(e)}")
            raise TransferError(f"Upload failed: {e.strerror or str(e)}") from e

        if transferred < total_bytes:
            raise TransferError(f"Upload failed: stream ended after {transferred} of {total_bytes} bytes")
        if total_bytes == 0:
            yield TransferProgress(0, 0)
        logger.info(f"Blob '{path}' written ({transferred} bytes)")

    async def get_fetch_url(self, path: str) -> str:
        self.resolve(path)
        return f"{self.public_base_url}/blobs/{quote(path, safe='/')}"
