"""Storage operations built on a StorageBackend."""

from __future__ import annotations

from .lifecycle import (
    BatchDeleteGroup,
    BatchOutcome,
    BucketLifecycleManager,
    TeardownReport,
)
from .transfer import TransferExecutor

__all__ = [
    "BatchDeleteGroup",
    "BatchOutcome",
    "BucketLifecycleManager",
    "TeardownReport",
    "TransferExecutor",
]
