"""
Filesystem object storage for local/dev runs. Signed URLs carry an itsdangerous
timed token and are served by GET /files/{key}.
"""
from __future__ import annotations

import os
from urllib.parse import quote

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from app.core.config import settings
from app.storage.base import ObjectNotFound, ObjectStorage, StorageError
from app.storage.keys import normalize_key


class LocalObjectStorage(ObjectStorage):
    def __init__(self, root: str | None = None, secret: str | None = None, public_base_url: str | None = None) -> None:
        self.root = os.path.abspath(root or settings.storage_local_root)
        self.public_base_url = (public_base_url or settings.storage_public_base_url).rstrip("/")
        self.serializer = URLSafeTimedSerializer(
            secret or settings.storage_local_signing_secret or settings.jwt_secret_key,
            salt="object-url",
        )

    def _path(self, key: str) -> str:
        return os.path.join(self.root, *normalize_key(key).split("/"))

    def get_object(self, key: str) -> bytes:
        path = self._path(key)
        if not os.path.isfile(path):
            raise ObjectNotFound(key)
        try:
            with open(path, "rb") as f:
                return f.read()
        except OSError as e:
            raise StorageError(f"get_object failed for {key}") from e

    def put_object(self, key: str, content: bytes, content_type: str = "application/octet-stream") -> None:
        path = self._path(key)
        try:
            os.makedirs(os.path.dirname(path), exist_ok=True)
            tmp = f"{path}.tmp"
            with open(tmp, "wb") as f:
                f.write(content)
            os.replace(tmp, path)
        except OSError as e:
            raise StorageError(f"put_object failed for {key}") from e

    def delete_object(self, key: str) -> None:
        path = self._path(key)
        try:
            os.unlink(path)
        except FileNotFoundError:
            return
        except OSError as e:
            raise StorageError(f"delete_object failed for {key}") from e

    def sign_url(self, key: str, ttl_seconds: int) -> str:
        k = normalize_key(key)
        token = self.serializer.dumps({"k": k, "ttl": int(ttl_seconds)})
        return f"{self.public_base_url}/{quote(k)}?token={token}"

    def verify_token(self, key: str, token: str) -> bool:
        """True if the token was issued for this key and has not outlived its TTL."""
        try:
            data = self.serializer.loads(token, max_age=None)
            if data.get("k") != normalize_key(key):
                return False
            self.serializer.loads(token, max_age=int(data.get("ttl", 0)))
        except (BadSignature, SignatureExpired, ValueError, AttributeError):
            return False
        return True

    def exists(self, key: str) -> bool:
        return os.path.isfile(self._path(key))
