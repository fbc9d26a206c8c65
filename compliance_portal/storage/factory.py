"""
Storage factory — returns the configured backend instance.
Supports: local (filesystem + signed JWT URLs), s3 (boto3, presigned URLs).
"""
from typing import Optional

from compliance_portal.config import settings
from compliance_portal.core.logging import get_logger
from compliance_portal.storage.base import ObjectStorage, ObjectStorageError

logger = get_logger(__name__)

_instance: Optional[ObjectStorage] = None


def get_object_storage() -> ObjectStorage:
    """Return the process-wide storage backend, creating it on first use."""
    global _instance
    if _instance is None:
        _instance = _make_backend(settings.STORAGE_BACKEND)
        logger.info("Object storage initialised", extra={
            "event": "storage_ready", "backend": _instance.backend_name,
        })
    return _instance


def set_object_storage(storage: Optional[ObjectStorage]) -> None:
    """Swap the process-wide backend. Used by tests and the lifespan."""
    global _instance
    _instance = storage


def _make_backend(name: str) -> ObjectStorage:
    if name == "local":
        from compliance_portal.storage.local_backend import LocalObjectStorage
        return LocalObjectStorage(
            root=settings.STORAGE_ROOT,
            signing_secret=settings.SIGNING_SECRET,
            public_base_url=settings.STORAGE_PUBLIC_BASE_URL,
        )
    if name == "s3":
        from compliance_portal.storage.s3_backend import S3ObjectStorage
        return S3ObjectStorage(
            region=settings.S3_REGION,
            endpoint_url=settings.S3_ENDPOINT_URL,
            aws_access_key_id=settings.S3_ACCESS_KEY_ID,
            aws_secret_access_key=settings.S3_SECRET_ACCESS_KEY,
        )
    raise ObjectStorageError(f"Unsupported storage backend: '{name}'. Must be 'local' or 's3'.")


async def ensure_buckets(storage: ObjectStorage) -> list:
    """Create the documents (private) and profile-pictures (public) buckets if missing.

    Returns the names of the buckets created.
    """
    wanted = {
        settings.DOCUMENTS_BUCKET: False,
        settings.PROFILE_PICTURES_BUCKET: True,
    }
    existing = {b.name for b in await storage.list_buckets()}
    created = []
    for name, public in wanted.items():
        if name in existing:
            continue
        await storage.create_bucket(name, public=public)
        created.append(name)
    return created
