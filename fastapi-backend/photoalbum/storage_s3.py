"""
Blob store backed by AWS S3 (or compatible services like MinIO).

Wraps boto3 with secure defaults (optional SSE-KMS, explicit content-type
bindings) and maps every client failure onto `StorageError`.
"""

from __future__ import annotations

from typing import Optional, Dict, Any
import logging

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from .config import Settings, get_settings
from .storage import StorageError

logger = logging.getLogger("photoalbum.storage_s3")

_MISSING_CODES = {"404", "NoSuchKey", "NotFound"}


class S3BlobStore:
    """Wrapper over boto3 implementing the `BlobStore` protocol."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        settings = settings or get_settings()
        session_kwargs = {}

        if settings.s3_access_key_id and settings.s3_secret_access_key:
            session_kwargs.update(
                aws_access_key_id=settings.s3_access_key_id,
                aws_secret_access_key=settings.s3_secret_access_key,
            )

        session = (
            boto3.session.Session(**session_kwargs)
            if session_kwargs
            else boto3.session.Session()
        )

        client_kwargs = {
            "service_name": "s3",
            "region_name": settings.s3_region,
            "config": Config(signature_version="s3v4"),
        }
        if settings.s3_endpoint:
            client_kwargs["endpoint_url"] = settings.s3_endpoint
        if settings.s3_use_ssl is False:
            client_kwargs["use_ssl"] = False

        self._client = session.client(**client_kwargs)
        self._bucket = settings.s3_bucket
        self._region = settings.s3_region
        self._kms_key_id = settings.kms_key_id

    @property
    def bucket(self) -> str:
        return self._bucket

    def _apply_object_defaults(
        self, extra: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {}
        if self._kms_key_id:
            params["ServerSideEncryption"] = "aws:kms"
            params["SSEKMSKeyId"] = self._kms_key_id
        if extra:
            params.update(extra)
        return params

    def put(self, key: str, data: bytes, content_type: Optional[str] = None) -> None:
        extra = {"Metadata": {"managed-by": "photo-album"}}
        if content_type:
            extra["ContentType"] = content_type
        try:
            self._client.put_object(
                Bucket=self._bucket,
                Key=key,
                Body=data,
                **self._apply_object_defaults(extra),
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"put_object failed for {key}: {exc}") from exc

    def get(self, key: str) -> bytes:
        try:
            response = self._client.get_object(Bucket=self._bucket, Key=key)
            return response["Body"].read()
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"Failed to download {key}: {exc}") from exc

    def delete(self, key: str) -> None:
        try:
            self._client.delete_object(Bucket=self._bucket, Key=key)
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"Failed to delete {key}: {exc}") from exc

    def exists(self, key: str) -> bool:
        try:
            self._client.head_object(Bucket=self._bucket, Key=key)
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") in _MISSING_CODES:
                return False
            raise StorageError(f"head_object failed for {key}: {exc}") from exc
        except BotoCoreError as exc:
            raise StorageError(f"head_object failed for {key}: {exc}") from exc
        return True

    def location_for(self, key: str) -> str:
        return f"s3://{self._bucket}/{key}"

    def ensure_ready(self) -> None:
        self.ensure_bucket()

    def ensure_bucket(self) -> None:
        """Best-effort check that bucket exists (useful for local MinIO)."""
        try:
            self._client.head_bucket(Bucket=self._bucket)
        except ClientError as exc:
            error_code = exc.response.get("Error", {}).get("Code")
            if error_code in {"404", "NoSuchBucket"}:
                logger.info(
                    "Bucket %s missing; attempting to create for dev/local use",
                    self._bucket,
                )
                params = {"Bucket": self._bucket}
                if self._region and self._region != "us-east-1":
                    params["CreateBucketConfiguration"] = {"LocationConstraint": self._region}
                self._client.create_bucket(**params)
            else:
                raise


__all__ = ["S3BlobStore"]
