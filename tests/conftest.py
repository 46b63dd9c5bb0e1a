"""
Required settings must exist before anything imports app.core.config.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test-vault.db")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("CELERY_BROKER_URL", "memory://")
os.environ.setdefault("CELERY_RESULT_BACKEND", "cache+memory://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("STORAGE_BACKEND", "s3")
os.environ.setdefault("STORAGE_BUCKET", "test-bucket")
