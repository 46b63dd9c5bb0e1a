"""
FastAPI dependencies wiring the delivery resolver to its collaborators.
Override get_delivery_resolver / get_storage_dep / get_url_cache in tests.
"""
from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.session import get_db
from app.delivery.resolver import ImageDeliveryResolver
from app.forensics.logger import ForensicLogger
from app.services.images.service import ImageService
from app.services.signed_url_cache import SignedUrlCache
from app.storage.base import ObjectStorage
from app.storage.factory import get_storage
from app.tiers.catalog import TierCatalogService
from app.tiers.models import TierCatalog


@lru_cache(maxsize=1)
def get_url_cache() -> SignedUrlCache:
    return SignedUrlCache()


@lru_cache(maxsize=1)
def get_forensic_logger() -> ForensicLogger:
    return ForensicLogger()


def get_storage_dep() -> ObjectStorage:
    return get_storage()


def get_tier_catalog(db: Session = Depends(get_db)) -> TierCatalog | None:
    """Stored catalog when the platform integration is configured, else None (fixed ordering)."""
    if not settings.patreon_creator_access_token:
        return None
    return TierCatalogService(db).load()


def get_delivery_resolver(
    db: Session = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage_dep),
    url_cache: SignedUrlCache = Depends(get_url_cache),
    forensic_logger: ForensicLogger = Depends(get_forensic_logger),
    catalog: TierCatalog | None = Depends(get_tier_catalog),
) -> ImageDeliveryResolver:
    return ImageDeliveryResolver(
        images=ImageService(db),
        storage=storage,
        url_cache=url_cache,
        forensic_logger=forensic_logger,
        catalog=catalog,
    )
