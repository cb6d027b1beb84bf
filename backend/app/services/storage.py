from __future__ import annotations
import io
from datetime import timedelta
from functools import lru_cache
from minio import Minio
from minio.deleteobjects import DeleteObject
from minio.error import S3Error
import structlog
from app.config import settings

log = structlog.get_logger()

def _parse_endpoint(ep: str) -> tuple[str, bool]:
    # Return (host:port, secure)
    secure = ep.startswith("https://")
    host = ep.replace("http://", "").replace("https://", "")
    return host, secure

@lru_cache(maxsize=1)
def _client() -> Minio:
    host, secure = _parse_endpoint(settings.s3_endpoint)
    client = Minio(host, access_key=settings.s3_access_key, secret_key=settings.s3_secret_key, secure=secure)
    try:
        if not client.bucket_exists(settings.s3_bucket_media):
            client.make_bucket(settings.s3_bucket_media)
    except S3Error:
        # Bucket creation may race with another worker; fine if it exists
        pass
    return client

def put_bytes(bucket: str, key: str, data: bytes, content_type: str) -> None:
    _client().put_object(bucket, key, io.BytesIO(data), length=len(data), content_type=content_type)

def object_exists(bucket: str, key: str) -> bool:
    try:
        _client().stat_object(bucket, key)
        return True
    except S3Error as e:
        if e.code in ("NoSuchKey", "NoSuchObject"):
            return False
        raise

def remove_objects(bucket: str, keys: list[str]) -> None:
    """Delete keys from a bucket. Raises on the first per-object error."""
    if not keys:
        return
    errors = _client().remove_objects(bucket, [DeleteObject(k) for k in keys])
    for err in errors:
        raise RuntimeError(f"delete failed for {err.name}: {err.message}")

def presign_get(bucket: str, key: str) -> str:
    return _client().presigned_get_object(
        bucket, key, expires=timedelta(seconds=settings.s3_presign_expiry_seconds)
    )

def presign_put(bucket: str, key: str) -> str:
    return _client().presigned_put_object(
        bucket, key, expires=timedelta(seconds=settings.s3_presign_expiry_seconds)
    )
