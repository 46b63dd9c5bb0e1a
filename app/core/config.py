"""
Application configuration.
All settings are loaded from environment variables.
Use env.example as a reference for required variables.
"""
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    IMPORTANT: Credentials have no defaults - they MUST be set in .env file.
    """

    # ===========================================
    # APPLICATION
    # ===========================================
    app_env: str = "local"
    # CORS: comma-separated (e.g. http://localhost:3000,https://vault.example.com). Empty = default list in code.
    cors_origins: str = ""
    # Trusted proxy IPs (comma-separated). Used for X-Forwarded-For in production.
    trusted_proxy_ips: str = ""

    # ===========================================
    # DATABASE (PostgreSQL)
    # ===========================================
    database_url: str  # Required, no default

    # ===========================================
    # REDIS & CELERY
    # ===========================================
    redis_url: str  # Required, no default
    celery_broker_url: str  # Required, no default
    celery_result_backend: str  # Required, no default

    # ===========================================
    # OBJECT STORAGE
    # ===========================================
    storage_backend: str = "s3"  # s3, local
    storage_bucket: str = ""
    # S3-compatible endpoint (Cloudflare R2: https://<account>.r2.cloudflarestorage.com)
    storage_endpoint_url: str = ""
    storage_region: str = "auto"
    storage_access_key_id: str = ""
    storage_secret_access_key: str = ""
    # Public base URL of the bucket (used by the local backend to build signed links)
    storage_public_base_url: str = "http://localhost:8000/files"
    storage_local_root: str = "/data/objects"
    storage_local_signing_secret: str = ""

    # ===========================================
    # IMAGE DELIVERY
    # ===========================================
    signed_url_ttl_seconds: int = 900  # 15 min
    # Cached URL must die before the URL itself (see validate_delivery_ttls)
    signed_url_cache_ttl_seconds: int = 240
    signed_url_cache_safety_margin_seconds: int = 60
    signed_url_cache_prefix: str = "signed-url:"

    # ===========================================
    # TIER CATALOG (Patreon)
    # ===========================================
    patreon_api_base: str = "https://www.patreon.com/api/oauth2/v2"
    patreon_creator_access_token: str = ""
    patreon_user_agent: str = "PatronVault/1.0"
    tier_catalog_ttl_seconds: int = 14400  # 4 hours

    # ===========================================
    # WATERMARK
    # ===========================================
    watermark_font_path: str = ""
    watermark_brand_text: str = "© PatronVault"
    # Per-user ID mark applied to bronze downloads
    id_watermark_position: str = "diagonal"  # corner, center, diagonal, custom
    id_watermark_opacity: float = 0.15
    id_watermark_scale: float = 1.0
    tracking_artist: str = "PatronVault"
    tracking_software: str = "PatronVault Protection System"
    jpeg_quality: int = 95

    # ===========================================
    # AUTH (session collaborator)
    # ===========================================
    jwt_secret_key: str  # Required, no default
    jwt_algorithm: str = "HS256"
    # Shared secret for scheduled publish / cleanup jobs (X-Cron-Secret header)
    cron_secret: str = ""

    # ===========================================
    # WORKERS
    # ===========================================
    forensic_log_queue: str = "forensics"
    regenerate_batch_size: int = 100

    # ===========================================
    # CIRCUIT BREAKER
    # ===========================================
    cb_failure_threshold: int = 5
    cb_open_seconds: int = 30

    # ===========================================
    # LOGGING
    # ===========================================
    request_id_header: str = "X-Request-Id"
    log_file: str | None = None
    log_max_bytes: int = 10_000_000
    log_backup_count: int = 5

    @field_validator("storage_backend")
    @classmethod
    def validate_storage_backend(cls, v: str) -> str:
        v = v.lower().strip()
        if v not in ("s3", "local"):
            raise ValueError("storage_backend must be 's3' or 'local'")
        return v

    @field_validator("id_watermark_position")
    @classmethod
    def validate_id_watermark_position(cls, v: str) -> str:
        v = v.lower().strip()
        if v not in ("corner", "center", "diagonal", "custom"):
            raise ValueError("id_watermark_position must be corner, center, diagonal or custom")
        return v

    @model_validator(mode="after")
    def validate_delivery_ttls(self) -> "Settings":
        """Cached signed URLs must expire at least one margin before the URL itself."""
        if self.signed_url_cache_safety_margin_seconds < 60:
            raise ValueError("signed_url_cache_safety_margin_seconds must be at least 60")
        limit = self.signed_url_ttl_seconds - self.signed_url_cache_safety_margin_seconds
        if self.signed_url_cache_ttl_seconds > limit:
            raise ValueError(
                "signed_url_cache_ttl_seconds must be <= signed_url_ttl_seconds - safety margin"
            )
        return self

    @property
    def trusted_proxy_ips_set(self) -> set[str]:
        """Get trusted proxy IPs as a set."""
        return {ip.strip() for ip in self.trusted_proxy_ips.split(",") if ip.strip()}

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


settings = Settings()
