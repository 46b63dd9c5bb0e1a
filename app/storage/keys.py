"""
Object key layout: {yyyy}/{mm}/{slug}/original/{filename} and the matching
.../watermarked/{filename} for the pre-rendered brand variant.
"""
import re
from datetime import datetime

_KEY_ALLOWED_RE = re.compile(r"[A-Za-z0-9._\-/+=@() ]+")


def normalize_key(key: str) -> str:
    """Strip leading '/', collapse '//' and reject traversal or odd characters."""
    k = str(key or "").strip().lstrip("/")
    k = re.sub(r"/{2,}", "/", k)
    if not k:
        raise ValueError("Invalid storage key: empty")
    if ".." in k:
        raise ValueError("Invalid storage key: path traversal detected")
    if not _KEY_ALLOWED_RE.fullmatch(k):
        raise ValueError("Invalid storage key: contains forbidden characters")
    return k


def object_keys_for(date: datetime, slug: str, filename: str) -> dict[str, str]:
    base = f"{date.year}/{date.month:02d}/{slug}"
    return {
        "original": f"{base}/original/{filename}",
        "watermarked": f"{base}/watermarked/{filename}",
    }


def watermarked_key_for(original_key: str) -> str:
    """Sibling key of the brand variant; keys outside the layout get a prefix."""
    if "/original/" in original_key:
        return original_key.replace("/original/", "/watermarked/", 1)
    return f"watermarked/{original_key.lstrip('/')}"
