"""
Blob storage backends for record exports.
"""

from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from src.core.errors import BlobStoreError


@runtime_checkable
class BlobStore(Protocol):
    """Write-only object storage used by the exporter."""

    def put_object(self, key: str, body: bytes, content_type: str) -> None:
        """Write an object. Raises BlobStoreError."""
        ...


class S3BlobStore:
    """
    Amazon S3 (or S3-compatible) blob store.

    Args:
        bucket_name: Target bucket
        client: Pre-built boto3 S3 client (built from the other arguments if None)
        endpoint_url: Endpoint override for S3-compatible emulators (uses path-style addressing)
        region_name: AWS region
        timeout: Connect/read timeout in seconds
    """

    def __init__(
        self,
        bucket_name: str,
        client: Any = None,
        endpoint_url: str | None = None,
        region_name: str | None = None,
        timeout: float = 10.0,
    ):
        if not bucket_name:
            raise ValueError("bucket_name is required for the S3 blob store")

        self.bucket_name = bucket_name
        if client is None:
            config = Config(
                connect_timeout=timeout,
                read_timeout=timeout,
                retries={"max_attempts": 3, "mode": "standard"},
                s3={"addressing_style": "path"} if endpoint_url else None,
            )
            client = boto3.client(
                "s3",
                endpoint_url=endpoint_url,
                region_name=region_name,
                config=config,
            )
        self.client = client

    def put_object(self, key: str, body: bytes, content_type: str) -> None:
        try:
            self.client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=body,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as e:
            raise BlobStoreError(f"Failed to write s3://{self.bucket_name}/{key}: {e}", key=key) from e


class LocalBlobStore:
    """
    Blob store writing files under a root directory (local runs and tests).

    The content type is not persisted.
    """

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def path_for(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if not path.is_relative_to(self.root.resolve()):
            raise BlobStoreError(f"Key escapes blob root: {key}", key=key)
        return path

    def put_object(self, key: str, body: bytes, content_type: str) -> None:
        path = self.path_for(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_name(path.name + ".tmp")
            tmp_path.write_bytes(body)
            tmp_path.replace(path)
        except OSError as e:
            raise BlobStoreError(f"Failed to write {path}: {e}", key=key) from e

    def read_object(self, key: str) -> bytes:
        return self.path_for(key).read_bytes()
