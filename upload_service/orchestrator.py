import asyncio
import inspect
from datetime import datetime, timezone
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Callable, Iterable, List, Optional, Sequence, Set, Union

from upload_service.blob_store import BlobStore, build_storage_path, build_stored_name
from upload_service.exceptions import (
    RegistrationError,
    TransferError,
    UploadError,
    UploadInProgressError,
    UploadValidationError,
)
from upload_service.logging_config import get_logger
from upload_service.registry_client import RegistryClient
from upload_service.schemas import FileRecordPayload, UploadCandidate, UploadResult
from upload_service.validator import validate

logger = get_logger(__name__)

CompletionCallback = Callable[[UploadResult], Union[None, Awaitable[None]]]

class UploadState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    TRANSFERRING = "transferring"
    FINALIZING = "finalizing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"

_END_OF_PROGRESS = object()

class UploadTask:
    """Handle on a single running upload.

    Iterating the task yields progress percentages (0-100, non-decreasing)
    until the upload finishes; the stream can be consumed once. ``result()``
    resolves to the ``UploadResult`` or raises the ``UploadError`` that ended
    the upload.
    """

    def __init__(self, owner_key: str):
        self.owner_key = owner_key
        self.state = UploadState.IDLE
        self.history: List[UploadState] = [UploadState.IDLE]
        self.progress = 0.0
        self.error: Optional[UploadError] = None
        self._last_published = 0.0
        self._queue: "asyncio.Queue[Any]" = asyncio.Queue()
        self._task: Optional["asyncio.Task[UploadResult]"] = None
        self._consumed = False

    def __aiter__(self) -> AsyncIterator[float]:
        if self._consumed:
            raise RuntimeError("Upload progress can only be iterated once")
        self._consumed = True
        return self._progress_stream()

    async def _progress_stream(self) -> AsyncIterator[float]:
        while True:
            item = await self._queue.get()
            if item is _END_OF_PROGRESS:
                return
            yield item

    async def result(self) -> UploadResult:
        return await self._task

    def cancel(self) -> bool:
        return self._task.cancel()

    def done(self) -> bool:
        return self._task is not None and self._task.done()

    @property
    def uploading(self) -> bool:
        return self.state in (UploadState.TRANSFERRING, UploadState.FINALIZING)

    def _set_state(self, state: UploadState) -> None:
        self.state = state
        self.history.append(state)

    def _publish(self, percent: float) -> None:
        percent = max(self._last_published, min(100.0, max(0.0, percent)))
        self._last_published = percent
        self.progress = percent
        self._queue.put_nowait(percent)

    def _close_stream(self) -> None:
        self._queue.put_nowait(_END_OF_PROGRESS)

class UploadOrchestrator:
    """Validate a file, push it to the blob store and register its metadata.

    One attempt per call, no retries. A second upload for an owner key whose
    previous upload is still running is rejected with ``UploadInProgressError``.
    A blob whose registration fails is left in place and logged.
    """

    def __init__(
        self,
        blob_store: BlobStore,
        registry_client: RegistryClient,
        allowed_types: Sequence[str],
        max_size_bytes: int,
        owner_collection: str = "domains",
        on_complete: Optional[CompletionCallback] = None,
    ):
        self.blob_store = blob_store
        self.registry_client = registry_client
        self.allowed_types = list(allowed_types)
        self.max_size_bytes = max_size_bytes
        self.owner_collection = owner_collection
        self.on_complete = on_complete
        self._in_flight: Set[str] = set()

    def is_uploading(self, owner_key: str) -> bool:
        return owner_key in self._in_flight

    def upload(
        self,
        owner_key: str,
        candidate: UploadCandidate,
        on_complete: Optional[CompletionCallback] = None,
    ) -> UploadTask:
        if owner_key in self._in_flight:
            logger.warning(f"Rejecting upload of '{candidate.declared_name}': owner '{owner_key}' already has one in flight")
            raise UploadInProgressError(f"An upload for '{owner_key}' is already in progress")

        self._in_flight.add(owner_key)
        task = UploadTask(owner_key)
        task._task = asyncio.ensure_future(self._run(task, candidate, on_complete or self.on_complete))
        return task

    def upload_first(
        self,
        owner_key: str,
        candidates: Iterable[UploadCandidate],
        on_complete: Optional[CompletionCallback] = None,
    ) -> UploadTask:
        candidates = list(candidates)
        if not candidates:
            raise UploadValidationError("No file supplied")
        if len(candidates) > 1:
            logger.info(f"{len(candidates)} files supplied for '{owner_key}', only '{candidates[0].declared_name}' will be uploaded")
        return self.upload(owner_key, candidates[0], on_complete)

    async def _run(
        self,
        task: UploadTask,
        candidate: UploadCandidate,
        on_complete: Optional[CompletionCallback],
    ) -> UploadResult:
        try:
            return await self._drive(task, candidate, on_complete)
        except asyncio.CancelledError:
            logger.warning(f"Upload of '{candidate.declared_name}' for '{task.owner_key}' cancelled in state {task.state.value}")
            task._set_state(UploadState.CANCELLED)
            raise
        finally:
            self._in_flight.discard(task.owner_key)
            task._close_stream()

    def _fail(self, task: UploadTask, error: UploadError) -> UploadError:
        task.error = error
        task._set_state(UploadState.FAILED)
        return error

    async def _drive(
        self,
        task: UploadTask,
        candidate: UploadCandidate,
        on_complete: Optional[CompletionCallback],
    ) -> UploadResult:
        owner_key = task.owner_key

        task._set_state(UploadState.VALIDATING)
        validation_error = validate(candidate, self.allowed_types, self.max_size_bytes)
        if validation_error:
            logger.warning(f"Rejected '{candidate.declared_name}' for '{owner_key}': {validation_error}")
            raise self._fail(task, UploadValidationError(validation_error))

        task._set_state(UploadState.TRANSFERRING)
        task.progress = 0.0
        stored_name = build_stored_name(owner_key, candidate.declared_name)
        storage_path = build_storage_path(self.owner_collection, owner_key, stored_name)
        logger.info(f"Uploading '{candidate.declared_name}' ({candidate.size_bytes} bytes) to '{storage_path}'")
        try:
            async for progress in self.blob_store.write(storage_path, candidate.content, candidate.size_bytes):
                task._publish(progress.percent)
        except UploadError as e:
            logger.error(f"Transfer of '{storage_path}' failed: {e}")
            raise self._fail(task, e)
        except Exception as e:
            logger.exception(f"Transfer of '{storage_path}' failed")
            raise self._fail(task, TransferError(f"Upload failed: {e}")) from e

        task._set_state(UploadState.FINALIZING)
        try:
            fetch_url = await self.blob_store.get_fetch_url(storage_path)
            payload = FileRecordPayload(
                owner_key=owner_key,
                display_name=candidate.declared_name,
                original_name=candidate.declared_name,
                stored_name=stored_name,
                size_bytes=candidate.size_bytes,
                mime_type=candidate.declared_mime_type,
                storage_path=storage_path,
                fetch_url=fetch_url,
                uploaded_at=datetime.now(timezone.utc),
            )
            registry_response = await self.registry_client.register(payload)
        except Exception as e:
            logger.warning(f"Blob '{storage_path}' was stored but could not be registered; it is now orphaned")
            raise self._fail(
                task, RegistrationError(f"Failed to save file information: {e}", blob_path=storage_path)
            ) from e

        result = UploadResult(
            id=str(registry_response["id"]),
            success=bool(registry_response.get("success", True)),
            file_metadata=payload,
            registry_response=registry_response,
        )
        task._set_state(UploadState.SUCCEEDED)
        task.progress = 0.0
        logger.info(f"Upload of '{candidate.declared_name}' for '{owner_key}' registered as {result.id}")

        if on_complete is not None:
            try:
                outcome = on_complete(result)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception:
                logger.exception(f"Completion callback failed for upload {result.id}")
        return result
