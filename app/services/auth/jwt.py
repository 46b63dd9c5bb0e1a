"""
Session collaborator adapter: bearer JWT -> Member.

Claims: sub (user id), tier, is_creator, patreon_user_id. Tokens are issued by the
membership login flow; this module only verifies and reads them.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi import Depends, HTTPException, Request, status
from jose import ExpiredSignatureError, JWTError, jwt

from app.core.config import settings
from app.delivery.models import Member

logger = logging.getLogger("auth")


def create_access_token(
    user_id: str,
    tier: str = "bronze",
    is_creator: bool = False,
    patreon_user_id: str | None = None,
    expires_minutes: int = 60,
) -> str:
    """Mint a session token (login flow, admin tooling, tests)."""
    now = datetime.now(timezone.utc)
    claims: dict[str, Any] = {
        "sub": user_id,
        "tier": tier,
        "is_creator": is_creator,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=expires_minutes)).timestamp()),
    }
    if patreon_user_id:
        claims["patreon_user_id"] = patreon_user_id
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_member(token: str) -> Member:
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expired")
    except JWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    return Member(
        user_id=str(user_id),
        tier=(payload.get("tier") or "bronze").strip().lower(),
        is_creator=bool(payload.get("is_creator", False)),
        watermark_identity=payload.get("patreon_user_id") or None,
    )


def _bearer_token(request: Request) -> str:
    header = request.headers.get("Authorization") or ""
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return token.strip()


def get_current_member(request: Request) -> Member:
    return decode_member(_bearer_token(request))


def require_creator(member: Member = Depends(get_current_member)) -> Member:
    if not member.is_creator:
        logger.info("admin_access_denied", extra={"user_id": member.user_id})
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Creator access required")
    return member
