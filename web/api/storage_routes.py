"""Upload API for event images, payment QR codes, team logos and receipts."""
from __future__ import annotations

from fastapi import APIRouter, Depends, File, UploadFile
from starlette.concurrency import run_in_threadpool

import config
from hub.policy import Actor
from hub.services import storage
from web.auth import require_actor

router = APIRouter(prefix="/api/storage", tags=["storage"])


@router.post("")
async def upload(file: UploadFile = File(...), actor: Actor = Depends(require_actor)):
    """Upload an image into the caller's namespace. Returns the object key and public URL."""
    data = await file.read(config.MAX_UPLOAD_BYTES + 1)
    key = await run_in_threadpool(storage.save_upload, actor, file.content_type, data)
    return {"key": key, "url": storage.public_url(key)}


@router.delete("/{namespace}/{name}")
async def delete(namespace: str, name: str, actor: Actor = Depends(require_actor)):
    """Delete an uploaded image. Only its uploader may."""
    await run_in_threadpool(storage.delete_upload, actor, f"{namespace}/{name}")
    return {"ok": True}
