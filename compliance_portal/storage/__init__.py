"""
Object storage abstraction layer.
Local filesystem and S3-compatible backends behind one bucket-scoped interface.
"""
from compliance_portal.storage.base import AccessGrant, ObjectStorage, ObjectStorageError, attachment_disposition
from compliance_portal.storage.factory import ensure_buckets, get_object_storage, set_object_storage

__all__ = [
    "AccessGrant",
    "ObjectStorage",
    "ObjectStorageError",
    "attachment_disposition",
    "ensure_buckets",
    "get_object_storage",
    "set_object_storage",
]
