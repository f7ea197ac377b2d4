"""
Local disk storage for uploaded farm images and avatars.

Files land in ``UPLOAD_DIR/<kind>/`` under randomised names and are served
statically at ``/uploads/<kind>/<name>``. The database keeps the relative
reference; ``absolute_url`` resolves it against the serving host on the way out.

Deletion is best effort: a failure is logged and never raised, so a stale
file can never fail the request that superseded it.
"""
import logging
import uuid
from pathlib import Path
from typing import NamedTuple
from urllib.parse import urlparse

from fastapi import UploadFile

from milkway.config import settings

logger = logging.getLogger(__name__)

FARM_IMAGES = "farms"
AVATARS = "avatars"

ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/webp"}


class UploadRejectedError(Exception):
    pass


class StoredFile(NamedTuple):
    reference: str
    path: Path


def upload_dir(kind: str) -> Path:
    return settings.UPLOAD_DIR / kind


def ensure_upload_dirs() -> None:
    for kind in (FARM_IMAGES, AVATARS):
        upload_dir(kind).mkdir(parents=True, exist_ok=True)


async def save_upload(upload: UploadFile, kind: str, field_name: str) -> StoredFile:
    if upload.content_type not in ALLOWED_CONTENT_TYPES:
        raise UploadRejectedError(
            "Invalid file type. Only JPEG, PNG, and WebP images are allowed."
        )

    content = await upload.read()
    if len(content) > settings.MAX_FILE_SIZE:
        max_mb = settings.MAX_FILE_SIZE // (1024 * 1024)
        raise UploadRejectedError(f"File too large. Max {max_mb}MB allowed.")

    suffix = Path(upload.filename or "").suffix.lower()
    filename = f"{field_name}-{uuid.uuid4().hex}{suffix}"
    directory = upload_dir(kind)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / filename
    path.write_bytes(content)

    return StoredFile(reference=f"/uploads/{kind}/{filename}", path=path)


async def save_uploads(
    uploads: list[UploadFile], kind: str, field_name: str
) -> list[StoredFile]:
    """Save every upload or none: files already written are removed if a later one is rejected."""
    stored: list[StoredFile] = []
    try:
        for upload in uploads:
            stored.append(await save_upload(upload, kind, field_name))
    except Exception:
        discard(stored)
        raise
    return stored


def delete_file(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("Could not delete %s: %s", path, exc)


def discard(stored: list[StoredFile]) -> None:
    for item in stored:
        delete_file(item.path)


def path_for_reference(reference: str, kind: str) -> Path:
    return upload_dir(kind) / Path(urlparse(reference).path).name


def delete_reference(reference: str | None, kind: str) -> None:
    if reference:
        delete_file(path_for_reference(reference, kind))


def absolute_url(reference: str | None, base_url: str, kind: str) -> str | None:
    if not reference:
        return None
    if reference.startswith(("http://", "https://")):
        return reference
    filename = Path(urlparse(reference).path).name
    return f"{base_url.rstrip('/')}/uploads/{kind}/{filename}"
