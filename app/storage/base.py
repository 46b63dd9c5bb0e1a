from abc import ABC, abstractmethod


class StorageError(RuntimeError):
    """Raised when an object store operation fails (network, auth, missing key)."""


class ObjectNotFound(StorageError):
    """The requested key does not exist."""


class ObjectStorage(ABC):
    """Object store collaborator. Gets/puts are idempotent; signing never mutates data."""

    @abstractmethod
    def get_object(self, key: str) -> bytes:
        raise NotImplementedError

    @abstractmethod
    def put_object(self, key: str, content: bytes, content_type: str = "application/octet-stream") -> None:
        raise NotImplementedError

    @abstractmethod
    def delete_object(self, key: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def sign_url(self, key: str, ttl_seconds: int) -> str:
        """Time-limited GET URL for the key."""
        raise NotImplementedError

    def exists(self, key: str) -> bool:
        try:
            self.get_object(key)
        except ObjectNotFound:
            return False
        return True
