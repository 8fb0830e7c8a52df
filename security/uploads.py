import os
from dataclasses import dataclass
from typing import Iterable, Optional

IMAGE_MAX_BYTES = 5 * 1024 * 1024
ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/webp")
ALLOWED_IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp")


@dataclass(frozen=True)
class FileCheck:
    is_valid: bool
    error: Optional[str] = None


def _file_size(file) -> Optional[int]:
    stream = getattr(file, "stream", file)
    if not hasattr(stream, "seek") or not hasattr(stream, "tell"):
        return None
    pos = stream.tell()
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(pos)
    return size


def validate_file_size(file, max_bytes: int) -> FileCheck:
    if file is None or not getattr(file, "filename", None):
        return FileCheck(False, "Invalid file")

    size = _file_size(file)
    if size is None:
        return FileCheck(False, "Invalid file")

    if size > max_bytes:
        max_mb = max_bytes / (1024 * 1024)
        size_mb = size / (1024 * 1024)
        return FileCheck(False, f"File too large ({size_mb:.2f}MB). Maximum allowed: {max_mb:.2f}MB")
    return FileCheck(True)


def validate_file_type(file, allowed_mime_types: Iterable[str] = (), allowed_extensions: Iterable[str] = ()) -> FileCheck:
    if file is None or not getattr(file, "filename", None):
        return FileCheck(False, "Invalid file")

    allowed_mime_types = tuple(allowed_mime_types)
    allowed_extensions = tuple(e.lower() for e in allowed_extensions)

    mimetype = getattr(file, "mimetype", None) or getattr(file, "content_type", None) or ""
    if allowed_mime_types and mimetype not in allowed_mime_types:
        return FileCheck(False, f"File type not allowed: {mimetype or 'unknown'}. Allowed: {', '.join(allowed_mime_types)}")

    if allowed_extensions:
        ext = os.path.splitext(file.filename)[1].lower()
        if ext not in allowed_extensions:
            return FileCheck(False, f"File extension not allowed: {ext or 'none'}. Allowed: {', '.join(allowed_extensions)}")

    return FileCheck(True)
