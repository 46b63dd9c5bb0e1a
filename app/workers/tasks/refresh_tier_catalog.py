"""
Celery beat task: refresh the Patreon tier catalog (every 4 hours).
"""
import logging

from app.core.celery_app import celery_app
from app.db.session import SessionLocal
from app.tiers.catalog import TierCatalogService

logger = logging.getLogger(__name__)


@celery_app.task(
    name="app.workers.tasks.refresh_tier_catalog.refresh_tier_catalog",
    time_limit=60,
    soft_time_limit=55,
)
def refresh_tier_catalog() -> dict:
    db = SessionLocal()
    try:
        catalog = TierCatalogService(db).refresh()
        return {"ok": True, "tiers": len(catalog.tiers)}
    except Exception:
        logger.exception("refresh_tier_catalog_error")
        db.rollback()
        return {"ok": False, "error": "unexpected_error"}
    finally:
        db.close()
