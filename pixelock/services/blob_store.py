from __future__ import annotations

import logging
import time
import uuid
from functools import lru_cache
from typing import Any, Dict

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ..config import settings
from ..errors import StorageError

logger = logging.getLogger(__name__)

def _extension(original_filename: str | None) -> str:
    name = (original_filename or "").strip()
    if "." not in name:
        return "jpg"
    ext = name.rsplit(".", 1)[-1].lower()
    # simple sanitize
    safe = "".join(ch for ch in ext if ch.isalnum())[:8]
    return safe or "jpg"


def build_object_key(original_filename: str | None, upload_prefix: str | None = None) -> str:
    # uploads/<epoch ms>_<uuid>.<ext>
    prefix = (settings.UPLOAD_PREFIX if upload_prefix is None else upload_prefix).strip().lstrip("/")
    if prefix and not prefix.endswith("/"):
        prefix += "/"
    return f"{prefix}{int(time.time() * 1000)}_{uuid.uuid4().hex}.{_extension(original_filename)}"


class BlobStore:
    """Keyed object storage on one S3 bucket."""

    def __init__(self, client, bucket: str) -> None:
        self.client = client
        self.bucket = bucket

    def put(self, key: str, data: bytes, content_type: str | None = None, metadata: Dict[str, str] | None = None) -> str:
        params: Dict[str, Any] = {"Bucket": self.bucket, "Key": key, "Body": data}
        if content_type:
            params["ContentType"] = content_type
        if metadata:
            params["Metadata"] = metadata
        try:
            self.client.put_object(**params)
        except (BotoCoreError, ClientError) as exc:
            logger.error("put_object failed for %s: %s", key, exc)
            raise StorageError("Upload failed") from exc
        return key

    def delete(self, key: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as exc:
            logger.error("delete_object failed for %s: %s", key, exc)
            raise StorageError() from exc

    def presign_get(self, key: str, expires_seconds: int) -> str:
        try:
            return self.client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=expires_seconds,
            )
        except (BotoCoreError, ClientError) as exc:
            logger.error("presign failed for %s: %s", key, exc)
            raise StorageError("Could not issue link") from exc


def make_s3_client():
    session = boto3.session.Session(region_name=settings.AWS_REGION)
    return session.client(
        "s3",
        endpoint_url=settings.S3_ENDPOINT_URL or None,
        config=Config(signature_version="s3v4"),
    )


@lru_cache(maxsize=1)
def get_blob_store() -> BlobStore:
    return BlobStore(make_s3_client(), settings.S3_BUCKET)
