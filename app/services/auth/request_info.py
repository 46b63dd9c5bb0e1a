"""
Where a request came from: client IP (trusted-proxy aware), user agent, referer.
"""
from starlette.requests import Request

from app.core.config import settings
from app.delivery.models import ClientInfo


def get_client_ip(request: Request) -> str:
    """Client IP (supports X-Forwarded-For from proxy)."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded and settings.app_env == "production":
        trusted = settings.trusted_proxy_ips_set
        if trusted and request.client and request.client.host in trusted:
            return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "127.0.0.1"


def get_client_info(request: Request) -> ClientInfo:
    return ClientInfo(
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("User-Agent"),
        referer=request.headers.get("Referer"),
    )
