from typing import Optional


class UploadError(Exception):
    """Base class for errors surfaced by an upload."""

    status_code = 500


class UploadValidationError(UploadError):
    """The candidate file was rejected before any transfer started."""

    status_code = 400


class UploadInProgressError(UploadError):
    status_code = 409


class TransferError(UploadError):
    """The blob store failed while receiving bytes. Blob state is undefined."""

    status_code = 502


class RegistryUnavailableError(UploadError):
    """The registry could not be reached or answered with an error."""

    status_code = 502


class RegistrationError(RegistryUnavailableError):
    """Metadata registration failed after the blob was stored."""

    def __init__(self, message: str, blob_path: Optional[str] = None):
        super().__init__(message)
        self.blob_path = blob_path


class InvalidBlobPathError(UploadError):
    status_code = 400
