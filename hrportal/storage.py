"""
Filesystem-backed object storage.

Objects are addressed as ``{bucket}/{prefix}/{key}_{timestamp}.{ext}`` and
live under ``STORAGE_ROOT``. Downloads for browsers go through short-lived
signed URLs instead of exposing the storage root.
"""

import logging
import time
from pathlib import Path, PurePosixPath

import jwt

from hrportal.auth import jwt_handler
from hrportal.core import config

logger = logging.getLogger(__name__)

ATTACHMENTS_BUCKET = "attachments"
JOB_IMAGES_BUCKET = "job-images"


class StorageError(Exception):
    """The object store could not complete the operation."""


class ObjectNotFoundError(StorageError):
    """No object is stored at the requested path."""


def build_object_path(bucket: str, prefix: str, key, ext: str) -> str:
    timestamp = int(time.time() * 1000)
    return f"{bucket}/{prefix}/{key}_{timestamp}.{ext.lstrip('.').lower()}"


def _resolve_path(path: str) -> Path:
    parts = PurePosixPath(path.strip("/")).parts
    if not parts or any(part in {"..", "."} for part in parts):
        raise ValueError(f"Invalid object path: {path!r}")
    return Path(config.STORAGE_ROOT).joinpath(*parts)


def upload_object(path: str, data: bytes, upsert: bool = False) -> str:
    target = _resolve_path(path)
    if target.exists() and not upsert:
        raise StorageError(f"Object already exists: {path}")
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
    except OSError as exc:
        raise StorageError(f"Failed to store {path}") from exc
    logger.info("Stored object %s (%d bytes)", path, len(data))
    return path


def download_object(path: str) -> bytes:
    target = _resolve_path(path)
    if not target.is_file():
        raise ObjectNotFoundError(path)
    try:
        return target.read_bytes()
    except OSError as exc:
        raise StorageError(f"Failed to read {path}") from exc


def download_with_fallback(path: str, default_bucket: str = ATTACHMENTS_BUCKET) -> bytes:
    """Download ``path``; paths saved without a bucket are retried under the default bucket."""
    try:
        return download_object(path)
    except (ObjectNotFoundError, ValueError):
        logger.info("Object %s not found as given; trying bucket %s", path, default_bucket)
    return download_object(f"{default_bucket}/{path.strip('/')}")


def delete_object(path: str) -> bool:
    target = _resolve_path(path)
    if not target.is_file():
        return False
    try:
        target.unlink()
    except OSError as exc:
        raise StorageError(f"Failed to delete {path}") from exc
    return True


def delete_objects(paths) -> int:
    """Delete every stored object in ``paths``; failures are logged, not raised."""
    removed = 0
    for path in paths:
        if not path:
            continue
        try:
            if delete_object(path):
                removed += 1
        except (StorageError, ValueError):
            logger.warning("Could not delete object %s", path, exc_info=True)
    return removed


def create_signed_url(path: str, expires_in: int | None = None) -> str:
    _resolve_path(path)
    token = jwt_handler.create_object_token(path, expires_in or config.SIGNED_URL_EXPIRES_SECONDS)
    return f"/storage/signed/{token}"


def read_signed_path(token: str) -> str | None:
    try:
        payload = jwt_handler.decode_token(token, jwt_handler.SIGNED_URL_TOKEN_TYPE)
    except jwt.InvalidTokenError:
        return None
    return payload.get("path")
