"""
Main FastAPI application for PatronVault.
Serves image delivery, member privacy requests, admin API, cron hooks, local file links,
health and metrics.
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.core.logging import configure_logging
from app.api.errors import delivery_error_handler
from app.api.routes import health, images, admin, cron, files, privacy
from app.delivery.errors import DeliveryError
from app.utils.metrics import router as metrics_router


configure_logging()

app = FastAPI(
    title="PatronVault API",
    description="Tiered image delivery with watermarking and forensic logging",
    version="1.0.0",
)

# CORS
origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
if not origins:
    origins = ["http://localhost:3000", "http://127.0.0.1:3000"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Cache-Status", "X-User-Tier", "X-Tracking-Id", "X-Response-Time"],
)

app.add_exception_handler(DeliveryError, delivery_error_handler)

# Routers
app.include_router(health.router, tags=["health"])
app.include_router(images.router)
app.include_router(admin.router)
app.include_router(cron.router)
app.include_router(privacy.router)
if settings.storage_backend == "local":
    app.include_router(files.router)
app.include_router(metrics_router)
