"""
S3-compatible object storage (AWS S3, Cloudflare R2, MinIO) on boto3.
Calls go through the "object_storage" circuit breaker; botocore errors surface as StorageError.
"""
from __future__ import annotations

import logging
from typing import Any

import boto3
import botocore.exceptions
import pybreaker
from botocore.config import Config as BotoConfig

from app.core.config import settings
from app.services.circuit_breaker import get_circuit_breaker
from app.storage.base import ObjectNotFound, ObjectStorage, StorageError
from app.storage.keys import normalize_key

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"NoSuchKey", "404", "NotFound"}


class S3ObjectStorage(ObjectStorage):
    def __init__(self, bucket: str | None = None, client: Any = None) -> None:
        self.bucket = bucket or settings.storage_bucket
        if not self.bucket:
            raise StorageError("storage_bucket not configured")
        self.client = client or self._build_client()

    @staticmethod
    def _build_client() -> Any:
        cfg = BotoConfig(
            signature_version="s3v4",
            retries={"max_attempts": 3, "mode": "standard"},
            connect_timeout=10,
            read_timeout=30,
        )
        kwargs: dict[str, Any] = {"config": cfg, "region_name": settings.storage_region}
        if settings.storage_endpoint_url:
            kwargs["endpoint_url"] = settings.storage_endpoint_url
        if settings.storage_access_key_id and settings.storage_secret_access_key:
            kwargs["aws_access_key_id"] = settings.storage_access_key_id
            kwargs["aws_secret_access_key"] = settings.storage_secret_access_key
        return boto3.client("s3", **kwargs)

    def _call(self, op: str, key: str, func, *args: Any, **kwargs: Any) -> Any:
        breaker = get_circuit_breaker("object_storage")
        try:
            return breaker.call(func, *args, **kwargs)
        except pybreaker.CircuitBreakerError as e:
            raise StorageError(f"object storage unavailable ({op})") from e
        except botocore.exceptions.ClientError as e:
            code = str(e.response.get("Error", {}).get("Code", ""))
            if code in _NOT_FOUND_CODES:
                raise ObjectNotFound(key) from e
            logger.warning("storage_client_error", extra={"object_key": key, "error": code or str(e)})
            raise StorageError(f"{op} failed for {key}: {code}") from e
        except botocore.exceptions.BotoCoreError as e:
            logger.warning("storage_transport_error", extra={"object_key": key, "error": str(e)})
            raise StorageError(f"{op} failed for {key}") from e

    def get_object(self, key: str) -> bytes:
        k = normalize_key(key)

        def _get() -> bytes:
            response = self.client.get_object(Bucket=self.bucket, Key=k)
            return response["Body"].read()

        return self._call("get_object", k, _get)

    def put_object(self, key: str, content: bytes, content_type: str = "application/octet-stream") -> None:
        k = normalize_key(key)
        self._call(
            "put_object",
            k,
            self.client.put_object,
            Bucket=self.bucket,
            Key=k,
            Body=content,
            ContentType=content_type,
        )

    def delete_object(self, key: str) -> None:
        k = normalize_key(key)
        self._call("delete_object", k, self.client.delete_object, Bucket=self.bucket, Key=k)

    def sign_url(self, key: str, ttl_seconds: int) -> str:
        k = normalize_key(key)
        return self._call(
            "sign_url",
            k,
            self.client.generate_presigned_url,
            "get_object",
            Params={"Bucket": self.bucket, "Key": k},
            ExpiresIn=int(ttl_seconds),
        )

    def exists(self, key: str) -> bool:
        k = normalize_key(key)
        try:
            self._call("head_object", k, self.client.head_object, Bucket=self.bucket, Key=k)
        except ObjectNotFound:
            return False
        return True
