"""
S3-compatible storage backend (AWS S3, MinIO, Supabase Storage S3 endpoint).
Blocking boto3 calls run in worker threads.
"""
import asyncio
import json
from datetime import datetime, timezone
from typing import Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from compliance_portal.core.logging import get_logger
from compliance_portal.storage.base import (
    AccessGrant,
    BucketInfo,
    ObjectStorage,
    ObjectStorageError,
    attachment_disposition,
)

logger = get_logger(__name__)


def _public_read_policy(bucket: str) -> str:
    return json.dumps({
        "Version": "2012-10-17",
        "Statement": [{
            "Effect": "Allow",
            "Principal": "*",
            "Action": ["s3:GetObject"],
            "Resource": [f"arn:aws:s3:::{bucket}/*"],
        }],
    })


class S3ObjectStorage(ObjectStorage):
    backend_name = "s3"

    def __init__(
        self,
        region: str = "us-east-1",
        endpoint_url: Optional[str] = None,
        aws_access_key_id: Optional[str] = None,
        aws_secret_access_key: Optional[str] = None,
        client=None,
    ):
        self.region = region
        self.endpoint_url = endpoint_url or None
        config = Config(
            region_name=region,
            signature_version="s3v4",
            retries={"max_attempts": 3, "mode": "standard"},
        )
        self.s3_client = client or boto3.client(
            "s3",
            endpoint_url=self.endpoint_url,
            aws_access_key_id=aws_access_key_id,
            aws_secret_access_key=aws_secret_access_key,
            config=config,
        )

    async def _call(self, method: str, bucket: str = "", path: str = "", **params):
        try:
            return await asyncio.to_thread(getattr(self.s3_client, method), **params)
        except (ClientError, BotoCoreError) as exc:
            logger.error(f"S3 {method} failed: {exc}", extra={
                "event": "storage_error", "bucket": bucket, "path": path, "operation": method,
            })
            raise ObjectStorageError(f"S3 {method} failed: {exc}", bucket=bucket, path=path)

    async def _exists(self, bucket: str, path: str) -> bool:
        try:
            await asyncio.to_thread(self.s3_client.head_object, Bucket=bucket, Key=path)
            return True
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") in ("404", "NoSuchKey", "NotFound"):
                return False
            raise ObjectStorageError(f"S3 head_object failed: {exc}", bucket=bucket, path=path)

    async def upload(self, bucket, path, data, content_type="application/octet-stream", upsert=False):
        if not upsert and await self._exists(bucket, path):
            raise ObjectStorageError(f"Object already exists: {path}", bucket=bucket, path=path)
        await self._call(
            "put_object", bucket, path,
            Bucket=bucket, Key=path, Body=data, ContentType=content_type,
        )
        return path

    async def download(self, bucket, path):
        response = await self._call("get_object", bucket, path, Bucket=bucket, Key=path)
        return await asyncio.to_thread(response["Body"].read)

    async def create_signed_url(self, bucket, path, expires_in, download_name=None):
        params = {"Bucket": bucket, "Key": path}
        if download_name:
            params["ResponseContentDisposition"] = attachment_disposition(download_name)
        now = datetime.now(timezone.utc)
        url = await self._call(
            "generate_presigned_url", bucket, path,
            ClientMethod="get_object", Params=params, ExpiresIn=expires_in,
        )
        return AccessGrant.build(url, expires_in, now=now)

    def get_public_url(self, bucket, path):
        base = self.endpoint_url or f"https://{bucket}.s3.{self.region}.amazonaws.com"
        if self.endpoint_url:
            return f"{base.rstrip('/')}/{bucket}/{path}"
        return f"{base}/{path}"

    async def remove(self, bucket, paths):
        if not paths:
            return []
        response = await self._call(
            "delete_objects", bucket,
            Bucket=bucket,
            Delete={"Objects": [{"Key": p} for p in paths], "Quiet": False},
        )
        return [item["Key"] for item in response.get("Deleted", [])]

    async def list_buckets(self):
        response = await self._call("list_buckets")
        buckets = []
        for item in response.get("Buckets", []):
            name = item["Name"]
            buckets.append(BucketInfo(name=name, public=await self._is_public(name)))
        return buckets

    async def _is_public(self, bucket: str) -> bool:
        try:
            status = await asyncio.to_thread(self.s3_client.get_bucket_policy_status, Bucket=bucket)
        except ClientError:
            return False
        return bool(status.get("PolicyStatus", {}).get("IsPublic", False))

    async def create_bucket(self, name, public=False):
        params = {"Bucket": name}
        if self.region != "us-east-1":
            params["CreateBucketConfiguration"] = {"LocationConstraint": self.region}
        await self._call("create_bucket", name, **params)
        if public:
            await self._call("put_bucket_policy", name, Bucket=name, Policy=_public_read_policy(name))
        logger.info(f"Created bucket: {name}", extra={"event": "bucket_created", "bucket": name, "public": public})
        return BucketInfo(name=name, public=public)
