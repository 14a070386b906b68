"""File checks applied to attachments before they reach storage."""

import math
from dataclasses import dataclass

DEFAULT_MAX_SIZE_BYTES = 10 * 1024 * 1024

DEFAULT_ALLOWED_TYPES: tuple[str, ...] = (
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-powerpoint",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "text/plain",
    "text/csv",
    "image/png",
    "image/jpeg",
    "image/gif",
)

TYPE_NOT_ALLOWED_MESSAGE = (
    "File type not allowed. Allowed types: PDF, Word, Excel, PowerPoint, text, CSV, images"
)

_SIZE_UNITS = ("Bytes", "KB", "MB", "GB")


@dataclass(frozen=True)
class FileValidationResult:
    valid: bool
    error: str | None = None


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def validate_file(
    size: int,
    mime_type: str | None,
    max_size_bytes: int | None = None,
    allowed_types: list[str] | tuple[str, ...] | None = None,
) -> FileValidationResult:
    """
    Check a file's size and MIME type before upload.

    Size is checked first. ``allowed_types=None`` uses the default office,
    text and image set; an explicitly empty list accepts every type.

    Args:
        size: File size in bytes
        mime_type: Declared MIME type
        max_size_bytes: Size limit (defaults to 10 MiB)
        allowed_types: Accepted MIME types

    Returns:
        FileValidationResult with ``valid`` and, when invalid, ``error``
    """
    max_size = DEFAULT_MAX_SIZE_BYTES if max_size_bytes is None else max_size_bytes
    allowed = DEFAULT_ALLOWED_TYPES if allowed_types is None else allowed_types

    if size > max_size:
        limit_mb = _round_half_up(max_size / 1024 / 1024)
        return FileValidationResult(False, f"File too large. Maximum size is {limit_mb}MB")

    if allowed and mime_type not in allowed:
        return FileValidationResult(False, TYPE_NOT_ALLOWED_MESSAGE)

    return FileValidationResult(True)


def format_file_size(size: int) -> str:
    """Format a byte count for display, e.g. 1536 -> '1.5 KB'."""
    if size <= 0:
        return "0 Bytes"
    index = min(int(math.floor(math.log(size, 1024))), len(_SIZE_UNITS) - 1)
    value = float(f"{size / 1024 ** index:.2f}")
    return f"{value:g} {_SIZE_UNITS[index]}"
