"""Object storage abstraction — local filesystem and S3-compatible implementations."""

import asyncio
import logging
from pathlib import Path

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import ClientError

from metastore.config import Settings, settings as default_settings
from metastore.exceptions import ObjectNotFoundError

logger = logging.getLogger(__name__)

_MISSING_CODES = {"NoSuchKey", "404", "NotFound"}


class ObjectStore:
    """Opaque get/put/delete/sign primitives over a flat key space."""

    async def get(self, key: str) -> bytes:
        raise NotImplementedError

    async def put(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        raise NotImplementedError

    async def delete(self, key: str) -> None:
        raise NotImplementedError

    async def exists(self, key: str) -> bool:
        raise NotImplementedError

    async def signed_url(self, key: str, ttl_seconds: int = 3600) -> str:
        raise NotImplementedError


class LocalObjectStore(ObjectStore):
    """Stores objects on local filesystem under a base directory."""

    def __init__(self, base: Path):
        self.base = Path(base)
        self.base.mkdir(parents=True, exist_ok=True)

    def _resolve(self, key: str) -> Path:
        return self.base / key

    async def get(self, key: str) -> bytes:
        path = self._resolve(key)
        if not path.exists():
            raise ObjectNotFoundError(key)
        return path.read_bytes()

    async def put(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        dest = self._resolve(key)
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(data)
        return key

    async def delete(self, key: str) -> None:
        path = self._resolve(key)
        if path.exists():
            path.unlink()

    async def exists(self, key: str) -> bool:
        return self._resolve(key).exists()

    async def signed_url(self, key: str, ttl_seconds: int = 3600) -> str:
        return f"/media/{key}"


class S3ObjectStore(ObjectStore):
    """
    S3-compatible bucket (Wasabi in production).

    boto3 is blocking, so every call is pushed to a worker thread. Timeouts are
    explicit and the client never retries; callers see the first failure.
    """

    def __init__(
        self,
        bucket: str,
        *,
        region: str,
        endpoint_url: str | None = None,
        access_key: str = "",
        secret_key: str = "",
        timeout_seconds: float = 10.0,
    ):
        self.bucket = bucket
        session = boto3.Session(
            aws_access_key_id=access_key or None,
            aws_secret_access_key=secret_key or None,
            region_name=region,
        )
        self._s3 = session.client(
            "s3",
            endpoint_url=endpoint_url or None,
            config=BotoConfig(
                connect_timeout=timeout_seconds,
                read_timeout=timeout_seconds,
                retries={"max_attempts": 1, "mode": "standard"},
                s3={"addressing_style": "path"},
            ),
        )

    @staticmethod
    def _is_missing(err: ClientError) -> bool:
        return err.response.get("Error", {}).get("Code") in _MISSING_CODES

    async def get(self, key: str) -> bytes:
        def _get() -> bytes:
            resp = self._s3.get_object(Bucket=self.bucket, Key=key)
            return resp["Body"].read()

        try:
            return await asyncio.to_thread(_get)
        except ClientError as e:
            if self._is_missing(e):
                raise ObjectNotFoundError(key) from e
            raise

    async def put(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        await asyncio.to_thread(
            self._s3.put_object,
            Bucket=self.bucket,
            Key=key,
            Body=data,
            ContentType=content_type,
        )
        return key

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._s3.delete_object, Bucket=self.bucket, Key=key)

    async def exists(self, key: str) -> bool:
        try:
            await asyncio.to_thread(self._s3.head_object, Bucket=self.bucket, Key=key)
        except ClientError as e:
            if self._is_missing(e):
                return False
            raise
        return True

    async def signed_url(self, key: str, ttl_seconds: int = 3600) -> str:
        return await asyncio.to_thread(
            self._s3.generate_presigned_url,
            "get_object",
            Params={"Bucket": self.bucket, "Key": key},
            ExpiresIn=ttl_seconds,
        )


def get_object_store(config: Settings = default_settings) -> ObjectStore:
    if config.STORAGE_BACKEND == "s3":
        logger.info("Using S3 object store: bucket=%s endpoint=%s", config.S3_BUCKET, config.S3_ENDPOINT_URL)
        return S3ObjectStore(
            config.S3_BUCKET,
            region=config.S3_REGION,
            endpoint_url=config.S3_ENDPOINT_URL,
            access_key=config.S3_ACCESS_KEY,
            secret_key=config.S3_SECRET_KEY,
            timeout_seconds=config.OBJECT_STORE_TIMEOUT_SECONDS,
        )
    return LocalObjectStore(config.STORAGE_LOCAL_PATH)
