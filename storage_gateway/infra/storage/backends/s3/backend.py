"""S3-compatible storage backend implementation.

Implements the StorageBackend protocol for MinIO, AWS S3, and other
S3-compatible services using aioboto3.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, BinaryIO, cast

import aioboto3
from botocore.config import Config
from botocore.exceptions import ClientError

from storage_gateway.infra.storage.exceptions import (
    StorageDownloadError,
    StorageError,
    StorageNotConfiguredError,
    StorageUploadError,
    get_error_code,
    map_boto_error,
)

from ..protocol import BucketInfo, DeleteFailure, ObjectStat, UploadResult

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
    from types import TracebackType

    from storage_gateway.core.settings.storage import StorageSettings

logger = logging.getLogger(__name__)

#: Maximum number of keys S3 accepts in one DeleteObjects request.
MAX_DELETE_KEYS = 1000

_MISSING_KEY_CODES = frozenset({"NoSuchKey", "404", "NotFound"})
_MISSING_BUCKET_CODES = frozenset({"NoSuchBucket", "404", "NotFound"})
_BUCKET_EXISTS_CODES = frozenset({"BucketAlreadyOwnedByYou", "BucketAlreadyExists"})


class S3Backend:
    """S3-compatible storage backend.

    Attributes:
        settings: Storage configuration settings
        backend_name: Name identifier for this backend ("s3")
        is_ready: Whether backend is initialized

    Example:
        backend = S3Backend(settings)
        await backend.startup()
        await backend.put_object("reports", "2024.csv", stream, length, "text/csv")
        await backend.shutdown()
    """

    def __init__(self, settings: StorageSettings) -> None:
        """Initialize S3 backend.

        Args:
            settings: Storage settings with S3 configuration

        Raises:
            StorageNotConfiguredError: If storage is disabled
        """
        if not settings.is_configured:
            msg = "S3 backend not configured. Set STORAGE_ENABLED=true."
            raise StorageNotConfiguredError(msg)

        self.settings = settings
        self._session = aioboto3.Session()
        self._client: Any = None
        self._client_context: Any = None

    @property
    def backend_name(self) -> str:
        """Backend name identifier."""
        return "s3"

    @property
    def is_ready(self) -> bool:
        """Check if backend is initialized and ready."""
        return self._client is not None

    # ========================================================================
    # Lifecycle Management
    # ========================================================================

    async def startup(self) -> None:
        """Initialize S3 client and connection pool."""
        if self._client is not None:
            logger.debug("S3 backend already initialized")
            return

        logger.info(
            "Initializing S3 backend",
            extra={
                "endpoint": self.settings.endpoint,
                "region": self.settings.region,
                "use_ssl": self.settings.use_ssl,
            },
        )

        try:
            boto_config = Config(
                retries={
                    "max_attempts": self.settings.max_retries,
                    "mode": self.settings.retry_mode,
                },
                connect_timeout=self.settings.timeout,
                read_timeout=self.settings.timeout,
                max_pool_connections=self.settings.max_pool_connections,
                s3={"addressing_style": "path"} if self.settings.is_minio else None,
            )

            self._client_context = self._session.client(
                "s3",
                **self.settings.get_boto3_config(),
                config=boto_config,
            )
            self._client = await self._client_context.__aenter__()

            logger.info("S3 backend initialized successfully")

        except Exception as e:
            self._client_context = None
            logger.exception("Failed to initialize S3 backend", extra={"error": str(e)})
            raise StorageError(
                f"Failed to initialize S3 backend: {e}",
                code="STORAGE_INITIALIZATION_ERROR",
            ) from e

    async def shutdown(self) -> None:
        """Shutdown S3 client gracefully."""
        if self._client_context is None:
            logger.debug("S3 backend not initialized, nothing to shutdown")
            return

        logger.info("Shutting down S3 backend")

        try:
            await self._client_context.__aexit__(None, None, None)
        except Exception as e:
            logger.warning("Error closing S3 client", extra={"error": str(e)})
        finally:
            self._client = None
            self._client_context = None

        logger.info("S3 backend shutdown complete")

    async def health_check(self) -> bool:
        """Check S3 connectivity and credentials.

        Returns:
            True if healthy, False otherwise
        """
        if self._client is None:
            return False

        try:
            await self._client.list_buckets()
            return True
        except Exception as e:
            logger.warning("S3 health check failed", extra={"error": str(e)})
            return False

    def _ensure_client(self) -> Any:
        """Return the initialized client.

        Raises:
            StorageNotConfiguredError: If client not initialized
        """
        if self._client is None:
            msg = "S3 backend not initialized. Call startup() first."
            raise StorageNotConfiguredError(msg)
        return self._client

    # ========================================================================
    # Bucket Management
    # ========================================================================

    async def bucket_exists(self, bucket: str) -> bool:
        """Check if a bucket exists and is accessible.

        Args:
            bucket: Bucket name

        Returns:
            True if bucket exists
        """
        client = self._ensure_client()

        try:
            await client.head_bucket(Bucket=bucket)
            return True
        except ClientError as e:
            if get_error_code(e) in _MISSING_BUCKET_CODES:
                return False
            logger.exception("Error checking bucket existence", extra={"bucket": bucket})
            raise map_boto_error(e, operation="bucket_exists", key=bucket) from e

    async def create_bucket(self, bucket: str) -> bool:
        """Create a bucket.

        A bucket that already exists (created concurrently by another caller,
        or earlier) counts as success.

        Args:
            bucket: Bucket name

        Returns:
            True if this call created the bucket, False if it already existed
        """
        client = self._ensure_client()
        region = self.settings.region

        kwargs: dict[str, Any] = {"Bucket": bucket}
        # S3 requires CreateBucketConfiguration for regions other than us-east-1
        if region and region != "us-east-1":
            kwargs["CreateBucketConfiguration"] = {"LocationConstraint": region}

        try:
            await client.create_bucket(**kwargs)
        except ClientError as e:
            if get_error_code(e) in _BUCKET_EXISTS_CODES:
                logger.info("Bucket already exists", extra={"bucket": bucket})
                return False
            logger.exception("Failed to create bucket", extra={"bucket": bucket})
            raise map_boto_error(e, operation="create_bucket", key=bucket) from e

        logger.info("Bucket created", extra={"bucket": bucket, "region": region})
        return True

    async def delete_bucket(self, bucket: str) -> None:
        """Remove an empty bucket.

        Args:
            bucket: Bucket name
        """
        client = self._ensure_client()

        try:
            await client.delete_bucket(Bucket=bucket)
        except ClientError as e:
            logger.exception("Failed to delete bucket", extra={"bucket": bucket})
            raise map_boto_error(e, operation="delete_bucket", key=bucket) from e

        logger.info("Bucket deleted", extra={"bucket": bucket})

    async def list_buckets(self) -> AsyncIterator[BucketInfo]:
        """Iterate every accessible bucket, following continuation tokens.

        Yields:
            BucketInfo for each bucket
        """
        client = self._ensure_client()
        continuation_token: str | None = None

        while True:
            kwargs: dict[str, Any] = {}
            if continuation_token:
                kwargs["ContinuationToken"] = continuation_token

            try:
                response = await client.list_buckets(**kwargs)
            except ClientError as e:
                logger.exception("Failed to list buckets")
                raise map_boto_error(e, operation="list_buckets") from e

            for item in response.get("Buckets", []):
                yield BucketInfo(name=item["Name"], creation_date=item.get("CreationDate"))

            continuation_token = response.get("ContinuationToken")
            if not continuation_token:
                break

    # ========================================================================
    # Core Object Operations
    # ========================================================================

    async def stat_object(self, bucket: str, key: str) -> ObjectStat | None:
        """Get object metadata.

        Args:
            bucket: Bucket name
            key: Object key

        Returns:
            ObjectStat if the key exists (possibly as a delete marker), None otherwise
        """
        client = self._ensure_client()

        try:
            response = await client.head_object(Bucket=bucket, Key=key)
        except ClientError as e:
            headers = e.response.get("ResponseMetadata", {}).get("HTTPHeaders", {})
            if headers.get("x-amz-delete-marker") == "true":
                return ObjectStat(
                    key=key,
                    size_bytes=0,
                    content_type=None,
                    last_modified=None,
                    etag=None,
                    delete_marker=True,
                    version_id=headers.get("x-amz-version-id"),
                )
            if get_error_code(e) in _MISSING_KEY_CODES:
                return None
            logger.exception(
                "Failed to stat object", extra={"bucket": bucket, "key": key}
            )
            raise map_boto_error(e, operation="stat", key=key) from e

        return ObjectStat(
            key=key,
            size_bytes=response.get("ContentLength", 0),
            content_type=response.get("ContentType"),
            last_modified=response.get("LastModified"),
            etag=response.get("ETag", "").strip('"') or None,
            delete_marker=bool(response.get("DeleteMarker", False)),
            version_id=response.get("VersionId"),
        )

    async def put_object(
        self,
        bucket: str,
        key: str,
        data: BinaryIO,
        length: int,
        content_type: str,
    ) -> UploadResult:
        """Upload an object, replacing any existing one.

        Args:
            bucket: Target bucket
            key: Object key
            data: Readable binary stream positioned at the payload start
            length: Number of bytes to send
            content_type: MIME type

        Returns:
            UploadResult with upload information

        Raises:
            StorageUploadError: If the stream cannot be sent
        """
        client = self._ensure_client()

        try:
            response = await client.put_object(
                Bucket=bucket,
                Key=key,
                Body=data,
                ContentLength=length,
                ContentType=content_type,
            )
        except ClientError as e:
            logger.exception(
                "Failed to upload object", extra={"bucket": bucket, "key": key}
            )
            raise map_boto_error(e, operation="upload", key=key) from e
        except (OSError, ValueError) as e:
            logger.exception(
                "Unexpected error during upload", extra={"bucket": bucket, "key": key}
            )
            raise StorageUploadError(
                f"Failed to upload {key}: {e}",
                metadata={"bucket": bucket, "key": key, "error": str(e)},
            ) from e

        logger.info(
            "Object uploaded",
            extra={"bucket": bucket, "key": key, "size_bytes": length},
        )
        return UploadResult(
            key=key,
            bucket=bucket,
            etag=response.get("ETag", "").strip('"') or None,
            size_bytes=length,
            version_id=response.get("VersionId"),
        )

    async def get_object(
        self,
        bucket: str,
        key: str,
        sink: Callable[[bytes], Awaitable[None]],
    ) -> int:
        """Stream an object body into ``sink`` chunk by chunk.

        Args:
            bucket: Source bucket
            key: Object key
            sink: Awaited once per body chunk, in order

        Returns:
            Number of bytes delivered to the sink

        Raises:
            StorageDownloadError: If the body stream breaks
        """
        client = self._ensure_client()
        received = 0

        try:
            response = await client.get_object(Bucket=bucket, Key=key)
            async with response["Body"] as body:
                async for chunk in body.iter_chunks(self.settings.streaming_chunk_size):
                    received += len(chunk)
                    await sink(chunk)
        except ClientError as e:
            logger.exception(
                "Failed to download object", extra={"bucket": bucket, "key": key}
            )
            raise map_boto_error(e, operation="download", key=key) from e
        except (OSError, ValueError) as e:
            logger.exception(
                "Unexpected error during download", extra={"bucket": bucket, "key": key}
            )
            raise StorageDownloadError(
                f"Failed to download {key}: {e}",
                metadata={"bucket": bucket, "key": key, "bytes_received": received},
            ) from e

        logger.info(
            "Object downloaded",
            extra={"bucket": bucket, "key": key, "size_bytes": received},
        )
        return received

    async def delete_object(self, bucket: str, key: str) -> None:
        """Delete an object.

        Args:
            bucket: Target bucket
            key: Object key
        """
        client = self._ensure_client()

        try:
            await client.delete_object(Bucket=bucket, Key=key)
        except ClientError as e:
            logger.exception(
                "Failed to delete object", extra={"bucket": bucket, "key": key}
            )
            raise map_boto_error(e, operation="delete", key=key) from e

        logger.info("Object deleted", extra={"bucket": bucket, "key": key})

    async def list_object_keys(self, bucket: str, prefix: str = "") -> AsyncIterator[str]:
        """Iterate every key in a bucket (automatic pagination).

        Pages are requested lazily; closing the generator early stops paging.

        Args:
            bucket: Bucket name
            prefix: Filter by key prefix

        Yields:
            Object keys in listing order
        """
        client = self._ensure_client()
        continuation_token: str | None = None

        while True:
            kwargs: dict[str, Any] = {"Bucket": bucket, "Prefix": prefix}
            if continuation_token:
                kwargs["ContinuationToken"] = continuation_token

            try:
                response = await client.list_objects_v2(**kwargs)
            except ClientError as e:
                logger.exception("Failed to list objects", extra={"bucket": bucket})
                raise map_boto_error(e, operation="list", key=prefix or None) from e

            for item in response.get("Contents", []):
                yield item["Key"]

            continuation_token = response.get("NextContinuationToken")
            if not response.get("IsTruncated") or not continuation_token:
                break

    async def delete_objects(self, bucket: str, keys: Sequence[str]) -> list[DeleteFailure]:
        """Bulk-delete keys, splitting into requests of at most 1000 keys.

        Args:
            bucket: Bucket name
            keys: Keys to remove

        Returns:
            Keys the store reported as not deleted
        """
        client = self._ensure_client()
        failures: list[DeleteFailure] = []

        for start in range(0, len(keys), MAX_DELETE_KEYS):
            chunk = keys[start : start + MAX_DELETE_KEYS]
            try:
                response = await client.delete_objects(
                    Bucket=bucket,
                    Delete={"Objects": [{"Key": key} for key in chunk], "Quiet": True},
                )
            except ClientError as e:
                logger.exception(
                    "Bulk delete request failed",
                    extra={"bucket": bucket, "count": len(chunk)},
                )
                raise map_boto_error(e, operation="delete_objects") from e

            failures.extend(
                DeleteFailure(
                    key=error.get("Key", ""),
                    code=error.get("Code", ""),
                    message=error.get("Message", ""),
                )
                for error in response.get("Errors", [])
            )

        logger.debug(
            "Bulk delete completed",
            extra={"bucket": bucket, "count": len(keys), "failed": len(failures)},
        )
        return failures

    # ========================================================================
    # Presigned URLs
    # ========================================================================

    async def generate_presigned_download_url(
        self,
        bucket: str,
        key: str,
        expires_in: int,
    ) -> str:
        """Generate a presigned URL for downloading an object.

        Signing happens locally; the object is not looked up.

        Args:
            bucket: Bucket name
            key: Object key
            expires_in: URL expiry in seconds

        Returns:
            Presigned URL string
        """
        client = self._ensure_client()

        try:
            url = await client.generate_presigned_url(
                "get_object",
                Params={"Bucket": bucket, "Key": key},
                ExpiresIn=expires_in,
            )
        except ClientError as e:
            logger.exception(
                "Failed to generate presigned URL", extra={"bucket": bucket, "key": key}
            )
            raise map_boto_error(e, operation="generate_presigned_url", key=key) from e

        logger.info(
            "Generated presigned download URL",
            extra={"bucket": bucket, "key": key, "expires_in": expires_in},
        )
        return cast("str", url)

    async def __aenter__(self) -> S3Backend:
        await self.startup()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.shutdown()
