"""Bucket lifecycle operations: ensure-exists and full teardown.

Teardown empties a bucket with paged bulk deletes and then removes it:

1. Keys are read from a lazy listing and accumulated in a BatchDeleteGroup.
2. As soon as the group holds more than ``pack_size`` keys it is flushed as
   one bulk-delete call, so every full batch carries ``pack_size + 1`` keys.
3. Whatever is left when the listing ends is flushed once.
4. The bucket is removed.

A failed flush is logged and recorded in the TeardownReport; it never stops
the teardown. Listing and bucket-removal failures propagate. Flushes run one
at a time, in listing order.
"""

from __future__ import annotations

import logging
import time
from contextlib import aclosing
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from storage_gateway.infra.storage.exceptions import InvalidRequestError
from storage_gateway.infra.storage.metrics import record_batch_operation

if TYPE_CHECKING:
    from storage_gateway.infra.storage.backends.protocol import StorageBackend
    from storage_gateway.infra.storage.models import BucketRef

logger = logging.getLogger(__name__)


@dataclass
class BatchDeleteGroup:
    """Ordered keys waiting for the next bulk-delete call."""

    keys: list[str] = field(default_factory=list)

    def add(self, key: str) -> None:
        self.keys.append(key)

    def drain(self) -> list[str]:
        """Return the accumulated keys and clear the group."""
        drained, self.keys = self.keys, []
        return drained

    def __len__(self) -> int:
        return len(self.keys)


@dataclass(frozen=True)
class BatchOutcome:
    """Result of flushing one batch.

    Attributes:
        index: Zero-based position of the batch in the teardown
        keys: Keys sent in the bulk-delete call
        error: Failure description, None when every key was removed
        failed_keys: Keys that were not removed
    """

    index: int
    keys: list[str]
    error: str | None = None
    failed_keys: list[str] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass
class TeardownReport:
    """Summary of a bucket teardown."""

    bucket: str
    pack_size: int
    keys_listed: int = 0
    batches: list[BatchOutcome] = field(default_factory=list)
    bucket_removed: bool = False
    duration_seconds: float = 0.0

    @property
    def failed_batches(self) -> list[BatchOutcome]:
        return [batch for batch in self.batches if batch.failed]

    @property
    def failed_keys(self) -> list[str]:
        return [key for batch in self.batches for key in batch.failed_keys]

    @property
    def is_complete(self) -> bool:
        """True when every listed key was deleted and the bucket is gone."""
        return self.bucket_removed and not self.failed_batches

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for CLI and API output."""
        return {
            "bucket": self.bucket,
            "pack_size": self.pack_size,
            "keys_listed": self.keys_listed,
            "batches": len(self.batches),
            "failed_batches": [
                {"index": b.index, "size": len(b.keys), "error": b.error}
                for b in self.failed_batches
            ],
            "failed_keys": len(self.failed_keys),
            "bucket_removed": self.bucket_removed,
            "duration_seconds": round(self.duration_seconds, 3),
        }


class BucketLifecycleManager:
    """Creates buckets on demand and tears them down in batches."""

    def __init__(self, backend: StorageBackend) -> None:
        self._backend = backend

    async def ensure_bucket(self, bucket: BucketRef) -> bool:
        """Make sure ``bucket`` exists.

        Check-then-create is not atomic. Two callers racing on a missing
        bucket both reach ``create_bucket``; the backend reports the loser's
        "already exists" as success, so both calls succeed.

        Returns:
            True if this call created the bucket
        """
        if await self._backend.bucket_exists(bucket.name):
            return False

        created = await self._backend.create_bucket(bucket.name)
        if created:
            logger.info("Created missing bucket", extra={"bucket": bucket.name})
        return created

    async def teardown_bucket(self, bucket: BucketRef, pack_size: int) -> TeardownReport:
        """Delete every object in ``bucket`` in batches, then remove the bucket.

        Args:
            bucket: Bucket to remove
            pack_size: Flush threshold; batches hold ``pack_size + 1`` keys.
                Zero is allowed and yields one key per call.

        Returns:
            TeardownReport listing every batch and its outcome

        Raises:
            InvalidRequestError: If pack_size is negative
        """
        if pack_size < 0:
            raise InvalidRequestError(
                "pack_size must be zero or greater",
                metadata={"bucket": bucket.name, "pack_size": pack_size},
            )

        start_time = time.perf_counter()
        report = TeardownReport(bucket=bucket.name, pack_size=pack_size)
        group = BatchDeleteGroup()

        logger.info(
            "Starting bucket teardown",
            extra={"bucket": bucket.name, "pack_size": pack_size},
        )

        async with aclosing(self._backend.list_object_keys(bucket.name)) as keys:
            async for key in keys:
                report.keys_listed += 1
                group.add(key)
                if len(group) > pack_size:
                    await self._flush(bucket, group, report)

        if len(group) > 0:
            await self._flush(bucket, group, report)

        await self._backend.delete_bucket(bucket.name)
        report.bucket_removed = True
        report.duration_seconds = time.perf_counter() - start_time

        log = logger.warning if report.failed_batches else logger.info
        log(
            "Bucket teardown finished",
            extra={
                "bucket": bucket.name,
                "keys_listed": report.keys_listed,
                "batches": len(report.batches),
                "failed_batches": len(report.failed_batches),
                "duration_seconds": round(report.duration_seconds, 3),
            },
        )
        return report

    async def _flush(
        self,
        bucket: BucketRef,
        group: BatchDeleteGroup,
        report: TeardownReport,
    ) -> None:
        keys = group.drain()
        index = len(report.batches)

        try:
            failures = await self._backend.delete_objects(bucket.name, keys)
        except Exception as e:
            logger.exception(
                "Bulk delete batch failed",
                extra={
                    "bucket": bucket.name,
                    "batch_index": index,
                    "batch_size": len(keys),
                    "error": str(e),
                },
            )
            outcome = BatchOutcome(index=index, keys=keys, error=str(e), failed_keys=list(keys))
        else:
            if failures:
                first = failures[0]
                error = f"{len(failures)} of {len(keys)} keys not deleted ({first.code}: {first.message})"
                logger.warning(
                    "Bulk delete batch partially failed",
                    extra={
                        "bucket": bucket.name,
                        "batch_index": index,
                        "batch_size": len(keys),
                        "failed": len(failures),
                        "error": error,
                    },
                )
                outcome = BatchOutcome(
                    index=index,
                    keys=keys,
                    error=error,
                    failed_keys=[failure.key for failure in failures],
                )
            else:
                logger.debug(
                    "Bulk delete batch completed",
                    extra={"bucket": bucket.name, "batch_index": index, "batch_size": len(keys)},
                )
                outcome = BatchOutcome(index=index, keys=keys)

        report.batches.append(outcome)
        record_batch_operation(
            "teardown",
            total_count=len(keys),
            success_count=len(keys) - len(outcome.failed_keys),
            failure_count=len(outcome.failed_keys),
        )
