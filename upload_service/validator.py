from typing import Optional, Sequence

from upload_service.exceptions import UploadValidationError
from upload_service.schemas import UploadCandidate

SIZE_UNITS = ["Bytes", "KB", "MB", "GB", "TB"]

def format_file_size(size_bytes: int) -> str:
    """Human readable size with 1024-based units, e.g. 1536 -> '1.5 KB'."""
    if size_bytes == 0:
        return "0 Bytes"
    value = float(size_bytes)
    unit = 0
    while value >= 1024 and unit < len(SIZE_UNITS) - 1:
        value /= 1024
        unit += 1
    return f"{f'{value:.2f}'.rstrip('0').rstrip('.')} {SIZE_UNITS[unit]}"

def is_type_allowed(mime_type: str, allowed_types: Sequence[str]) -> bool:
    for allowed in allowed_types:
        if allowed.endswith("/*"):
            if mime_type.startswith(allowed[:-1]):
                return True
        elif mime_type == allowed:
            return True
    return False

def validate(candidate: UploadCandidate, allowed_types: Sequence[str], max_size_bytes: int) -> Optional[str]:
    """Return a user-facing error message, or None when the candidate is acceptable."""
    if not is_type_allowed(candidate.declared_mime_type, allowed_types):
        return f"File type {candidate.declared_mime_type} is not allowed. Allowed types: {', '.join(allowed_types)}"
    if candidate.size_bytes > max_size_bytes:
        return f"File size must be less than {format_file_size(max_size_bytes)}"
    return None

def ensure_valid(candidate: UploadCandidate, allowed_types: Sequence[str], max_size_bytes: int) -> None:
    error = validate(candidate, allowed_types, max_size_bytes)
    if error:
        raise UploadValidationError(error)
