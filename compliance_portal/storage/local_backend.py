"""
Filesystem storage backend.

Buckets are directories under STORAGE_ROOT. Signed URLs carry a short-lived
JWT naming the bucket and path; the storage router verifies it and streams
the file.
"""
import asyncio
import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional, Tuple

import jwt

from compliance_portal.core.errors import PermissionDenied
from compliance_portal.core.logging import get_logger
from compliance_portal.storage.base import (
    AccessGrant,
    BucketInfo,
    ObjectStorage,
    ObjectStorageError,
)

logger = get_logger(__name__)

BUCKET_META_FILE = ".bucket.json"
SIGNED_URL_AUDIENCE = "storage"


class LocalObjectStorage(ObjectStorage):
    backend_name = "local"

    def __init__(self, root: str, signing_secret: str, public_base_url: str, algorithm: str = "HS256"):
        self.root = Path(root).resolve()
        self.signing_secret = signing_secret
        self.public_base_url = public_base_url.rstrip("/")
        self.algorithm = algorithm
        self.root.mkdir(parents=True, exist_ok=True)

    # ── Paths ──

    def _bucket_dir(self, bucket: str) -> Path:
        bucket_dir = (self.root / bucket).resolve()
        if bucket_dir.parent != self.root or not (bucket_dir / BUCKET_META_FILE).exists():
            raise ObjectStorageError(f"Bucket not found: {bucket}", bucket=bucket)
        return bucket_dir

    def _object_path(self, bucket: str, path: str) -> Path:
        bucket_dir = self._bucket_dir(bucket)
        target = (bucket_dir / path).resolve()
        if bucket_dir not in target.parents or target.name == BUCKET_META_FILE:
            raise ObjectStorageError(f"Invalid object path: {path}", bucket=bucket, path=path)
        return target

    def is_public(self, bucket: str) -> bool:
        meta = json.loads((self._bucket_dir(bucket) / BUCKET_META_FILE).read_text())
        return bool(meta.get("public", False))

    # ── Objects ──

    async def upload(self, bucket, path, data, content_type="application/octet-stream", upsert=False):
        target = self._object_path(bucket, path)
        if target.exists() and not upsert:
            raise ObjectStorageError(f"Object already exists: {path}", bucket=bucket, path=path)

        def _write():
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)

        await asyncio.to_thread(_write)
        logger.debug("Object stored", extra={
            "event": "storage_upload", "bucket": bucket, "path": path, "size": len(data),
        })
        return path

    async def download(self, bucket, path):
        target = self._object_path(bucket, path)
        if not target.is_file():
            raise ObjectStorageError(f"Object not found: {path}", bucket=bucket, path=path)
        return await asyncio.to_thread(target.read_bytes)

    async def create_signed_url(self, bucket, path, expires_in, download_name=None):
        target = self._object_path(bucket, path)
        if not target.is_file():
            raise ObjectStorageError(f"Object not found: {path}", bucket=bucket, path=path)

        now = datetime.now(timezone.utc)
        payload = {
            "bucket": bucket,
            "path": path,
            "aud": SIGNED_URL_AUDIENCE,
            "iat": now,
            "exp": now + timedelta(seconds=expires_in),
        }
        if download_name:
            payload["download"] = download_name
        token = jwt.encode(payload, self.signing_secret, algorithm=self.algorithm)
        return AccessGrant.build(
            f"{self.public_base_url}/api/storage/signed/{token}", expires_in, now=now
        )

    def verify_signed_token(self, token: str) -> Tuple[str, str, Optional[str]]:
        """Return (bucket, path, download_name) for a valid, unexpired token."""
        try:
            payload = jwt.decode(
                token,
                self.signing_secret,
                algorithms=[self.algorithm],
                audience=SIGNED_URL_AUDIENCE,
            )
        except jwt.ExpiredSignatureError:
            raise PermissionDenied("Signed URL has expired")
        except jwt.InvalidTokenError:
            raise PermissionDenied("Invalid signed URL")
        return payload["bucket"], payload["path"], payload.get("download")

    def get_public_url(self, bucket, path):
        return f"{self.public_base_url}/api/storage/public/{bucket}/{path}"

    async def remove(self, bucket, paths):
        removed = []
        for path in paths:
            target = self._object_path(bucket, path)
            if target.is_file():
                await asyncio.to_thread(target.unlink)
                removed.append(path)
        return removed

    # ── Buckets ──

    async def list_buckets(self):
        buckets = []
        for child in sorted(self.root.iterdir()):
            meta_file = child / BUCKET_META_FILE
            if child.is_dir() and meta_file.exists():
                meta = json.loads(meta_file.read_text())
                buckets.append(BucketInfo(name=child.name, public=bool(meta.get("public", False))))
        return buckets

    async def create_bucket(self, name, public=False):
        bucket_dir = (self.root / name).resolve()
        if bucket_dir.parent != self.root:
            raise ObjectStorageError(f"Invalid bucket name: {name}", bucket=name)
        if (bucket_dir / BUCKET_META_FILE).exists():
            raise ObjectStorageError(f"Bucket already exists: {name}", bucket=name)
        bucket_dir.mkdir(parents=True, exist_ok=True)
        (bucket_dir / BUCKET_META_FILE).write_text(json.dumps({"public": public}))
        return BucketInfo(name=name, public=public)
