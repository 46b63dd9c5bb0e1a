"""
Celery application: broker and result backend from settings.
Tasks live in app.workers.tasks (forensic log writes, watermark regeneration,
scheduled publishing, tier catalog refresh, data erasure).
"""
from celery import Celery
from celery.schedules import crontab

from app.core.config import settings

celery_app = Celery(
    "app",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "app.workers.tasks.forensic_log",
        "app.workers.tasks.regenerate_watermarks",
        "app.workers.tasks.publish_scheduled",
        "app.workers.tasks.refresh_tier_catalog",
        "app.workers.tasks.delete_user_data",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_track_started=True,
    task_time_limit=3600,
    result_expires=86400,
    beat_schedule={
        "publish-scheduled-sets": {
            "task": "app.workers.tasks.publish_scheduled.publish_scheduled_sets",
            "schedule": crontab(minute="*/5"),
        },
        "refresh-tier-catalog": {
            "task": "app.workers.tasks.refresh_tier_catalog.refresh_tier_catalog",
            "schedule": crontab(minute=0, hour="*/4"),
        },
    },
)

celery_app.conf.task_routes = {
    "app.workers.tasks.forensic_log.record_image_access": {"queue": settings.forensic_log_queue},
    "app.workers.tasks.regenerate_watermarks.regenerate_static_watermarks": {"queue": "watermarks"},
}

celery_app.autodiscover_tasks(["app.workers.tasks"])
