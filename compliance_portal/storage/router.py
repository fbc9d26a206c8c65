"""
Blob delivery for the local storage backend — signed and public URLs.
"""
import mimetypes

from fastapi import APIRouter, HTTPException
from fastapi.responses import Response

from compliance_portal.storage.base import ObjectStorageError, attachment_disposition
from compliance_portal.storage.factory import get_object_storage
from compliance_portal.storage.local_backend import LocalObjectStorage

router = APIRouter()


def _local_storage() -> LocalObjectStorage:
    storage = get_object_storage()
    if not isinstance(storage, LocalObjectStorage):
        raise HTTPException(status_code=404, detail="Blob delivery is handled by the storage provider")
    return storage


def _blob_response(data: bytes, path: str, download_name: str = None) -> Response:
    media_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
    disposition = attachment_disposition(download_name) if download_name else "inline"
    return Response(content=data, media_type=media_type, headers={"Content-Disposition": disposition})


@router.get("/signed/{token}")
async def get_signed_object(token: str):
    """Stream the object named by a valid, unexpired signed token."""
    storage = _local_storage()
    bucket, path, download_name = storage.verify_signed_token(token)
    try:
        data = await storage.download(bucket, path)
    except ObjectStorageError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _blob_response(data, path, download_name)


@router.get("/public/{bucket}/{path:path}")
async def get_public_object(bucket: str, path: str):
    """Stream an object from a public bucket."""
    storage = _local_storage()
    try:
        if not storage.is_public(bucket):
            raise HTTPException(status_code=404, detail="Object not found")
        data = await storage.download(bucket, path)
    except ObjectStorageError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _blob_response(data, path)
