"""Storage backends package.

Provides the protocol-based abstraction over S3-compatible object stores.
"""

from storage_gateway.core.settings.storage import StorageBackendType

from .factory import create_storage_backend
from .protocol import (
    BucketInfo,
    DeleteFailure,
    ObjectStat,
    StorageBackend,
    UploadResult,
)

__all__ = [
    "BucketInfo",
    "DeleteFailure",
    "ObjectStat",
    "StorageBackend",
    "StorageBackendType",
    "UploadResult",
    "create_storage_backend",
]
