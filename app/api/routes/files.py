"""
Serves objects of the local storage backend behind its signed URLs.
Not mounted for S3/R2: those URLs point at the bucket directly.
"""
import mimetypes

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

from app.api.deps import get_storage_dep
from app.storage.base import ObjectNotFound, ObjectStorage, StorageError
from app.storage.local import LocalObjectStorage

router = APIRouter(tags=["files"])


@router.get("/files/{key:path}")
def get_file(
    key: str,
    token: str = Query(...),
    storage: ObjectStorage = Depends(get_storage_dep),
):
    if not isinstance(storage, LocalObjectStorage):
        raise HTTPException(status_code=404, detail="Not found")
    if not storage.verify_token(key, token):
        raise HTTPException(status_code=403, detail="Invalid or expired link")
    try:
        content = storage.get_object(key)
    except ObjectNotFound:
        raise HTTPException(status_code=404, detail="Not found")
    except StorageError:
        raise HTTPException(status_code=500, detail="Storage unavailable")
    media_type = mimetypes.guess_type(key)[0] or "application/octet-stream"
    return Response(content=content, media_type=media_type, headers={"Cache-Control": "private, max-age=60"})
