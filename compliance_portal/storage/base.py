"""
Abstract base class for object storage backends.
All backends are bucket-scoped and must implement the full interface.
"""
import abc
import os
import re
from datetime import datetime, timedelta, timezone
from typing import List, Optional
from urllib.parse import quote

from pydantic import BaseModel

from compliance_portal.core.errors import StoreError


class ObjectStorageError(StoreError):
    """Raised when a storage backend call fails."""

    def __init__(self, message: str, bucket: str = "", path: str = ""):
        self.bucket = bucket
        self.path = path
        super().__init__(message)


class AccessGrant(BaseModel):
    """Time-bounded signed URL. Not persisted; it simply expires."""
    url: str
    expires_in: int
    expires_at: datetime

    @classmethod
    def build(cls, url: str, expires_in: int, now: Optional[datetime] = None) -> "AccessGrant":
        issued = now or datetime.now(timezone.utc)
        return cls(url=url, expires_in=expires_in, expires_at=issued + timedelta(seconds=expires_in))


def attachment_disposition(filename: str) -> str:
    """Content-Disposition for a download. Names that are not plain ASCII
    tokens get an underscore fallback plus an RFC 5987 `filename*`."""
    name = os.path.basename(filename or "")
    fallback = re.sub(r"[^A-Za-z0-9._-]", "_", name)
    if not name or fallback == name:
        name = name or "download"
        return f'attachment; filename="{name}"'
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(name, safe='')}"


class BucketInfo(BaseModel):
    name: str
    public: bool = False


class ObjectStorage(abc.ABC):
    """Bucket-scoped blob store."""

    backend_name: str = "base"

    @abc.abstractmethod
    async def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str = "application/octet-stream",
        upsert: bool = False,
    ) -> str:
        """Store `data` at `path`. Returns the stored path.

        Raises ObjectStorageError if the object exists and upsert is False.
        """
        ...

    @abc.abstractmethod
    async def download(self, bucket: str, path: str) -> bytes:
        ...

    @abc.abstractmethod
    async def create_signed_url(
        self,
        bucket: str,
        path: str,
        expires_in: int,
        download_name: Optional[str] = None,
    ) -> AccessGrant:
        ...

    @abc.abstractmethod
    def get_public_url(self, bucket: str, path: str) -> str:
        ...

    @abc.abstractmethod
    async def remove(self, bucket: str, paths: List[str]) -> List[str]:
        """Delete objects; missing paths are ignored. Returns the paths removed."""
        ...

    @abc.abstractmethod
    async def list_buckets(self) -> List[BucketInfo]:
        ...

    @abc.abstractmethod
    async def create_bucket(self, name: str, public: bool = False) -> BucketInfo:
        ...
