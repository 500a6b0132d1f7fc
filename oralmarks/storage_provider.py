"""Pluggable object storage providers for recorded audio blobs."""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from oralmarks.errors import BlobDownloadError
from oralmarks.settings import settings

_DEFAULT_CONTENT_TYPE = "application/octet-stream"


def ensure_dir(path: Path) -> Path:
    """Create directory if needed and return it."""
    path.mkdir(parents=True, exist_ok=True)
    return path


@dataclass
class BlobObject:
    data: bytes
    content_type: str


class StorageProvider(Protocol):
    def get_object(self, bucket: str, key: str) -> BlobObject:
        """Return the stored bytes and content type for an object."""

    def put_bytes(self, bucket: str, key: str, data: bytes, content_type: str) -> None:
        """Persist bytes under bucket/key."""


class LocalDiskProvider:
    """Stores objects under data_path/objects/<bucket> for local development."""

    def __init__(self, base_dir: Path) -> None:
        self.base_dir = ensure_dir(base_dir)

    def _resolve(self, bucket: str, key: str) -> Path:
        root = self.base_dir.resolve()
        destination = (self.base_dir / bucket.strip("/") / key.strip("/")).resolve()
        if root not in destination.parents:
            raise ValueError("Invalid storage key")
        return destination

    def put_bytes(self, bucket: str, key: str, data: bytes, content_type: str) -> None:
        del content_type
        destination = self._resolve(bucket, key)
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(data)

    def get_object(self, bucket: str, key: str) -> BlobObject:
        try:
            path = self._resolve(bucket, key)
            data = path.read_bytes()
        except (OSError, ValueError) as exc:
            raise BlobDownloadError(bucket=bucket, path=key, message=f"Failed to download audio: {exc}") from exc
        content_type = mimetypes.guess_type(path.name)[0] or _DEFAULT_CONTENT_TYPE
        return BlobObject(data=data, content_type=content_type)


class S3Provider:
    """S3-compatible object storage provider."""

    def __init__(
        self,
        access_key_id: str,
        secret_access_key: str,
        endpoint_url: str | None = None,
        region: str | None = None,
    ) -> None:
        import boto3

        self._client = boto3.client(
            "s3",
            endpoint_url=endpoint_url,
            region_name=region,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
        )

    def put_bytes(self, bucket: str, key: str, data: bytes, content_type: str) -> None:
        self._client.put_object(Bucket=bucket, Key=key, Body=data, ContentType=content_type)

    def get_object(self, bucket: str, key: str) -> BlobObject:
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            response = self._client.get_object(Bucket=bucket, Key=key)
            data = response["Body"].read()
        except (BotoCoreError, ClientError) as exc:
            raise BlobDownloadError(bucket=bucket, path=key, message=f"Failed to download audio: {exc}") from exc
        return BlobObject(data=data, content_type=response.get("ContentType") or _DEFAULT_CONTENT_TYPE)


_provider: StorageProvider | None = None


def _create_provider() -> StorageProvider:
    backend = settings.storage_backend.lower().strip()
    if backend == "s3":
        if not settings.s3_access_key_id or not settings.s3_secret_access_key:
            raise RuntimeError("S3 storage backend requires S3_ACCESS_KEY_ID and S3_SECRET_ACCESS_KEY")
        return S3Provider(
            access_key_id=settings.s3_access_key_id,
            secret_access_key=settings.s3_secret_access_key,
            endpoint_url=settings.s3_endpoint_url,
            region=settings.s3_region,
        )
    return LocalDiskProvider(settings.data_path / "objects")


def get_storage_provider() -> StorageProvider:
    global _provider
    if _provider is None:
        _provider = _create_provider()
    return _provider


def reset_storage_provider() -> None:
    global _provider
    _provider = None
