"""Storage backend protocol and normalized data structures.

This module defines:
- Normalized records returned by backends (stat, upload, bucket, delete failure)
- The narrow capability interface the gateway needs from an object store
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, BinaryIO, Protocol

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
    from datetime import datetime

# ============================================================================
# Normalized Data Structures
# ============================================================================


@dataclass(frozen=True)
class ObjectStat:
    """Result of a stat (HEAD) call on one object.

    Attributes:
        key: Object key
        size_bytes: Object size in bytes
        content_type: MIME type reported by the store
        last_modified: Last modification timestamp
        etag: Entity tag for version identification
        delete_marker: True when the latest version is a delete marker
        version_id: Version ID (for versioned buckets)
    """

    key: str
    size_bytes: int
    content_type: str | None
    last_modified: datetime | None
    etag: str | None
    delete_marker: bool = False
    version_id: str | None = None


@dataclass(frozen=True)
class UploadResult:
    """Result of an upload operation.

    Attributes:
        key: Object key where the payload was stored
        bucket: Bucket name
        etag: Entity tag of the stored object
        size_bytes: Declared size of the payload
        version_id: Version ID (for versioned buckets)
    """

    key: str
    bucket: str
    etag: str | None
    size_bytes: int
    version_id: str | None = None


@dataclass(frozen=True)
class BucketInfo:
    """Bucket listing entry."""

    name: str
    creation_date: datetime | None


@dataclass(frozen=True)
class DeleteFailure:
    """A key the store refused to delete in a bulk-delete call."""

    key: str
    code: str
    message: str


# ============================================================================
# Storage Backend Protocol
# ============================================================================


class StorageBackend(Protocol):
    """Capability interface over an S3-compatible object store.

    Uses structural typing (Protocol) so tests can supply an in-memory
    implementation.
    """

    @property
    def backend_name(self) -> str:
        """Name of the backend (e.g., 's3')."""
        ...

    @property
    def is_ready(self) -> bool:
        """Check if backend is initialized and ready for operations."""
        ...

    # ========================================================================
    # Lifecycle Management
    # ========================================================================

    async def startup(self) -> None:
        """Create clients and connection pools."""
        ...

    async def shutdown(self) -> None:
        """Close connections and release resources."""
        ...

    async def health_check(self) -> bool:
        """Return True when the store is reachable with the configured credentials."""
        ...

    # ========================================================================
    # Buckets
    # ========================================================================

    async def bucket_exists(self, bucket: str) -> bool:
        """Check if a bucket exists and is accessible."""
        ...

    async def create_bucket(self, bucket: str) -> bool:
        """Create a bucket.

        Creating a bucket that already exists is not an error.
        """
        ...

    async def delete_bucket(self, bucket: str) -> None:
        """Remove an empty bucket."""
        ...

    def list_buckets(self) -> AsyncIterator[BucketInfo]:
        """Lazily iterate every bucket visible to the credentials."""
        ...

    # ========================================================================
    # Objects
    # ========================================================================

    async def stat_object(self, bucket: str, key: str) -> ObjectStat | None:
        """Return object metadata, or None when the key is absent."""
        ...

    async def put_object(
        self,
        bucket: str,
        key: str,
        data: BinaryIO,
        length: int,
        content_type: str,
    ) -> UploadResult:
        """Store ``length`` bytes read from ``data`` under ``key``, replacing any object."""
        ...

    async def get_object(
        self,
        bucket: str,
        key: str,
        sink: Callable[[bytes], Awaitable[None]],
    ) -> int:
        """Read the whole object body, pushing each chunk into ``sink``.

        Returns:
            Number of bytes delivered.
        """
        ...

    async def delete_object(self, bucket: str, key: str) -> None:
        """Remove one object."""
        ...

    def list_object_keys(self, bucket: str, prefix: str = "") -> AsyncIterator[str]:
        """Lazily iterate every key in a bucket."""
        ...

    async def delete_objects(self, bucket: str, keys: Sequence[str]) -> list[DeleteFailure]:
        """Remove many keys in bulk.

        Returns:
            Per-key failures reported by the store (empty on full success).
        """
        ...

    # ========================================================================
    # Presigned URLs
    # ========================================================================

    async def generate_presigned_download_url(
        self,
        bucket: str,
        key: str,
        expires_in: int,
    ) -> str:
        """Issue a time-limited GET URL without checking that the object exists."""
        ...
