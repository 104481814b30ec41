"""Image uploads stored on disk, namespaced by uploader."""
from __future__ import annotations

import logging
import uuid
from pathlib import Path, PurePosixPath

import config
from hub import policy
from hub.errors import NotFoundError, ValidationError
from hub.policy import Actor, Facts

logger = logging.getLogger("campushub.storage")

PUBLIC_PREFIX = "/uploads"
ALLOWED_TYPES = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/gif": ".gif",
    "image/webp": ".webp",
}


def _resolve(key: str) -> tuple[str, Path]:
    """Split an object key into (namespace, absolute path); rejects traversal."""
    parts = PurePosixPath(key.lstrip("/")).parts
    if len(parts) != 2 or any(p in ("", ".", "..") for p in parts):
        raise ValidationError("Invalid object key")
    return parts[0], config.UPLOAD_DIR.joinpath(*parts)


def public_url(key: str) -> str:
    return f"{PUBLIC_PREFIX}/{key}"


def save_upload(actor: Actor, content_type: str, data: bytes) -> str:
    """Store an image under the actor's namespace and return its object key."""
    policy.authorize(actor, policy.CREATE, policy.STORAGE, Facts(owner_id=actor.user_id))
    ext = ALLOWED_TYPES.get((content_type or "").lower())
    if ext is None:
        raise ValidationError("Only PNG, JPEG, GIF or WebP images can be uploaded")
    if not data:
        raise ValidationError("Empty file")
    if len(data) > config.MAX_UPLOAD_BYTES:
        raise ValidationError(f"File too large (max {config.MAX_UPLOAD_BYTES} bytes)")
    key = f"{actor.user_id}/{uuid.uuid4().hex}{ext}"
    _, path = _resolve(key)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    logger.info("Stored %s (%d bytes)", key, len(data))
    return key


def delete_upload(actor: Actor, key: str) -> None:
    """Delete an object; only its uploader may."""
    namespace, path = _resolve(key)
    policy.authorize(actor, policy.DELETE, policy.STORAGE, Facts(owner_id=namespace))
    if not path.is_file():
        raise NotFoundError("File not found")
    path.unlink()
    logger.info("Deleted %s", key)
