"""
File upload validation and storage path helpers.
Validation runs before any storage or database call.
"""
import os
import re
import secrets
import time
from dataclasses import dataclass
from typing import Iterable, Optional

from fastapi import UploadFile

from compliance_portal.core.constants import POLICIES_PREFIX, USER_UPLOADS_PREFIX
from compliance_portal.core.errors import ValidationFailed


@dataclass
class UploadedBlob:
    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def extension(self) -> str:
        _, ext = os.path.splitext(self.filename)
        return ext.lstrip(".").lower()


async def read_upload(file: Optional[UploadFile]) -> UploadedBlob:
    if file is None or not file.filename:
        raise ValidationFailed("A file is required")
    data = await file.read()
    return UploadedBlob(
        filename=file.filename,
        content_type=file.content_type or "application/octet-stream",
        data=data,
    )


def validate_blob(blob: UploadedBlob, allowed_types: Iterable[str], max_bytes: int, label: str = "file") -> None:
    if blob.content_type not in set(allowed_types):
        raise ValidationFailed(f"File type '{blob.content_type}' is not allowed for {label}")
    if blob.size == 0:
        raise ValidationFailed("File is empty")
    if blob.size > max_bytes:
        max_mb = max_bytes / (1024 * 1024)
        raise ValidationFailed(f"File size must be less than {max_mb:g}MB")


def require_fields(**fields) -> None:
    """Raise ValidationFailed naming every blank required field."""
    missing = [name for name, value in fields.items() if value is None or (isinstance(value, str) and not value.strip())]
    if missing:
        raise ValidationFailed(f"Missing required fields: {', '.join(missing)}")


def sanitize_filename(filename: str) -> str:
    filename = os.path.basename(filename)
    filename = re.sub(r"[^\w\-.]", "_", filename)
    if not filename or filename == ".":
        filename = "unnamed_file"
    return filename


def _stamp() -> int:
    return int(time.time() * 1000)


def document_path(blob: UploadedBlob) -> str:
    suffix = f".{blob.extension}" if blob.extension else ""
    return f"{USER_UPLOADS_PREFIX}{_stamp()}-{secrets.token_hex(6)}{suffix}"


def policy_path(blob: UploadedBlob) -> str:
    return f"{POLICIES_PREFIX}{_stamp()}-{sanitize_filename(blob.filename)}"


def profile_picture_path(user_id, blob: UploadedBlob) -> str:
    return f"{user_id}/profile-picture.{blob.extension or 'img'}"
