"""Request and result records exchanged with the gateway service.

All records are constructed per request and never cached.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import BinaryIO

from .exceptions import InvalidRequestError

DEFAULT_CONTENT_TYPE = "application/octet-stream"

#: Lifetime of presigned read URLs.
PRESIGNED_DOWNLOAD_EXPIRY = timedelta(hours=24)


@dataclass(frozen=True)
class BucketRef:
    """A non-empty bucket identifier."""

    name: str

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise InvalidRequestError("Bucket name must not be empty")

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class ObjectRef:
    """One stored object. Keys are opaque and may contain ``/``."""

    bucket: BucketRef
    key: str

    def __post_init__(self) -> None:
        if not self.key:
            raise InvalidRequestError(
                "Object key must not be empty",
                metadata={"bucket": self.bucket.name},
            )

    @classmethod
    def of(cls, bucket: str, key: str) -> ObjectRef:
        """Build a ref from plain strings, validating both parts."""
        return cls(BucketRef(bucket), key)

    def __str__(self) -> str:
        return f"{self.bucket.name}/{self.key}"


@dataclass(frozen=True)
class TransferRequest:
    """A single-object upload.

    ``length`` must equal the number of bytes the payload yields; the store
    rejects mismatches.
    """

    ref: ObjectRef
    payload: BinaryIO
    length: int
    content_type: str = DEFAULT_CONTENT_TYPE


@dataclass(frozen=True)
class DownloadResult:
    """A fully buffered object body."""

    ref: ObjectRef
    data: bytes
    content_type: str = DEFAULT_CONTENT_TYPE

    @property
    def size_bytes(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class PresignedUrlGrant:
    """A time-limited read URL for one object."""

    ref: ObjectRef
    url: str
    expires_in: timedelta = PRESIGNED_DOWNLOAD_EXPIRY
    issued_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def expires_at(self) -> datetime:
        return self.issued_at + self.expires_in
