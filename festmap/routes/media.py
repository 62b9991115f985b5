"""
media.py — Serve uploaded pin media.

Route:
  GET /api/v1/media/{path} — the object stored at `path` (the part of a
                             pin's media_url after /api/v1/media/)
"""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from festmap.core.errors import MediaNotFound, MediaStoreError
from festmap.services.engine import get_media_store
from festmap.stores.media import MediaStore

router = APIRouter(prefix="/api/v1/media", tags=["media"])


@router.get("/{path:path}")
async def get_media(path: str, media: MediaStore = Depends(get_media_store)):
    try:
        data, content_type = await media.download(path)
    except MediaNotFound:
        raise HTTPException(status_code=404, detail="Media not found")
    except MediaStoreError as exc:
        raise HTTPException(status_code=502, detail=str(exc))

    # Object paths are never reused, so the bytes behind a URL never change.
    return Response(
        content=data,
        media_type=content_type,
        headers={"Cache-Control": "public, max-age=86400, immutable"},
    )
