from functools import lru_cache

from app.core.config import settings
from app.storage.base import ObjectStorage


@lru_cache(maxsize=1)
def get_storage() -> ObjectStorage:
    """Configured object storage backend (singleton per process)."""
    if settings.storage_backend == "local":
        from app.storage.local import LocalObjectStorage

        return LocalObjectStorage()
    from app.storage.s3 import S3ObjectStorage

    return S3ObjectStorage()
