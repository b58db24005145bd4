"""Helpers for the upload area: local disk by default, MinIO when configured."""

from __future__ import annotations

import io
import logging
import os
import re
import time
from typing import Optional

from minio import Minio
from minio.error import S3Error

from .config import get_settings

logger = logging.getLogger(__name__)

# purpose: centralize reads and writes of uploaded data files
# status: active

_MINIO_CLIENT: Optional[Minio] = None
S3_PREFIX = "s3://"


def _get_upload_dir() -> str:
    """Return the configured upload directory, creating it when needed."""

    upload_dir = os.getenv("UPLOAD_DIR") or get_settings().upload_dir
    os.makedirs(upload_dir, exist_ok=True)
    return upload_dir


def _ensure_minio_client() -> Optional[Minio]:
    """Initialize and return a MinIO client when configuration is present."""

    global _MINIO_CLIENT
    settings = get_settings()
    endpoint = (settings.minio_endpoint or "").strip()
    if not endpoint or not settings.minio_access_key or not settings.minio_secret_key:
        return None
    if _MINIO_CLIENT is None:
        secure = endpoint.startswith("https")
        client = Minio(
            re.sub(r"^https?://", "", endpoint),
            access_key=settings.minio_access_key,
            secret_key=settings.minio_secret_key,
            secure=secure,
        )
        if not client.bucket_exists(settings.minio_bucket):
            client.make_bucket(settings.minio_bucket)
        _MINIO_CLIENT = client
    return _MINIO_CLIENT


def stored_filename(original_name: str, now_ms: int | None = None) -> str:
    """Name under which an upload is stored: ``<millis>-<name, whitespace as '-'>``."""

    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    base = os.path.basename(original_name or "upload")
    cleaned = re.sub(r"\s+", "-", base)
    return f"{stamp}-{cleaned}"


def save_upload(data: bytes, original_name: str, *, content_type: str = "application/octet-stream") -> tuple[str, str, int]:
    """Persist an uploaded file. Returns (stored filename, storage path, size in bytes)."""

    filename = stored_filename(original_name)
    client = _ensure_minio_client()
    if client:
        bucket = get_settings().minio_bucket
        client.put_object(bucket, filename, io.BytesIO(data), length=len(data), content_type=content_type)
        return filename, f"{S3_PREFIX}{bucket}/{filename}", len(data)

    storage_path = os.path.join(_get_upload_dir(), filename)
    with open(storage_path, "wb") as handle:
        handle.write(data)
    logger.info("stored upload %s (%d bytes)", filename, len(data))
    return filename, storage_path, len(data)


def locate_upload(filename: str) -> tuple[str, int] | None:
    """Find a previously stored upload by its stored name. Returns (path, size) or None."""

    safe_name = os.path.basename(filename or "")
    if not safe_name:
        return None
    client = _ensure_minio_client()
    if client:
        bucket = get_settings().minio_bucket
        try:
            stat = client.stat_object(bucket, safe_name)
        except S3Error:
            return None
        return f"{S3_PREFIX}{bucket}/{safe_name}", stat.size or 0

    path = os.path.join(_get_upload_dir(), safe_name)
    if not os.path.isfile(path):
        return None
    return path, os.path.getsize(path)


def load_binary_payload(storage_path: str) -> bytes:
    """Retrieve file contents regardless of backend."""

    if storage_path.startswith(S3_PREFIX):
        client = _ensure_minio_client()
        if not client:
            raise FileNotFoundError("Object storage client unavailable for s3 path")
        _, _, bucket_and_key = storage_path.partition(S3_PREFIX)
        bucket, _, object_name = bucket_and_key.partition("/")
        if not object_name:
            raise FileNotFoundError("Invalid s3 storage path")
        response = client.get_object(bucket, object_name)
        try:
            return response.read()
        finally:
            response.close()
            response.release_conn()

    with open(storage_path, "rb") as handle:
        return handle.read()


def load_text(storage_path: str) -> str:
    return load_binary_payload(storage_path).decode("utf-8")
