"""Unit tests for bucket ensure-exists and batched teardown."""

import asyncio
import logging
import math

import pytest

from storage_gateway.infra.storage.exceptions import InvalidRequestError
from storage_gateway.infra.storage.models import BucketRef
from storage_gateway.infra.storage.operations import BucketLifecycleManager


@pytest.fixture
def manager(fake_backend):
    return BucketLifecycleManager(fake_backend)


class TestTeardownBatching:
    """Keys are flushed once the group holds more than pack_size keys."""

    async def test_pack_size_two_splits_five_keys(self, manager, fake_backend):
        """pack_size=2 over [a..e] flushes [a,b,c] then the remainder [d,e]."""
        fake_backend.seed("scratch", ["a", "b", "c", "d", "e"])

        report = await manager.teardown_bucket(BucketRef("scratch"), pack_size=2)

        assert fake_backend.delete_batches == [["a", "b", "c"], ["d", "e"]]
        assert report.keys_listed == 5
        assert report.bucket_removed is True
        assert report.is_complete

    @pytest.mark.parametrize(
        ("object_count", "pack_size"),
        [(1, 0), (3, 0), (7, 2), (9, 2), (10, 4), (999, 999), (1000, 999), (2001, 999)],
    )
    async def test_bulk_delete_call_count(self, manager, fake_backend, object_count, pack_size):
        """N keys take ceil(N / (pack_size + 1)) calls of at most pack_size + 1 keys."""
        keys = [f"k{i:05d}" for i in range(object_count)]
        fake_backend.seed("scratch", keys)

        await manager.teardown_bucket(BucketRef("scratch"), pack_size=pack_size)

        batches = fake_backend.delete_batches
        assert len(batches) == math.ceil(object_count / (pack_size + 1))
        assert all(len(batch) <= pack_size + 1 for batch in batches)
        assert all(len(batch) == pack_size + 1 for batch in batches[:-1])
        assert [key for batch in batches for key in batch] == keys

    async def test_pack_size_zero_deletes_one_key_per_call(self, manager, fake_backend):
        fake_backend.seed("scratch", ["a", "b", "c"])

        await manager.teardown_bucket(BucketRef("scratch"), pack_size=0)

        assert fake_backend.delete_batches == [["a"], ["b"], ["c"]]

    async def test_empty_bucket_removes_bucket_without_bulk_delete(self, manager, fake_backend):
        fake_backend.seed("scratch", [])

        report = await manager.teardown_bucket(BucketRef("scratch"), pack_size=999)

        assert fake_backend.delete_batches == []
        assert fake_backend.calls.count("delete_bucket") == 1
        assert report.batches == []
        assert "scratch" not in fake_backend.buckets

    async def test_exact_multiple_flushes_no_empty_remainder(self, manager, fake_backend):
        fake_backend.seed("scratch", ["a", "b", "c", "d", "e", "f"])

        await manager.teardown_bucket(BucketRef("scratch"), pack_size=2)

        assert fake_backend.delete_batches == [["a", "b", "c"], ["d", "e", "f"]]

    async def test_bucket_removed_after_last_batch(self, manager, fake_backend):
        fake_backend.seed("scratch", ["a", "b", "c"])

        await manager.teardown_bucket(BucketRef("scratch"), pack_size=1)

        assert fake_backend.calls == [
            "list_object_keys",
            "delete_objects",
            "delete_objects",
            "delete_bucket",
        ]

    async def test_negative_pack_size_is_rejected(self, manager, fake_backend):
        with pytest.raises(InvalidRequestError):
            await manager.teardown_bucket(BucketRef("scratch"), pack_size=-1)

        assert fake_backend.calls == []


class TestTeardownFailures:
    """A failed batch is logged and recorded; the teardown carries on."""

    async def test_failed_batch_does_not_stop_teardown(self, manager, fake_backend, caplog):
        fake_backend.seed("scratch", ["a", "b", "c", "d", "e", "f", "g"])
        fake_backend.failing_batches = {1}

        with caplog.at_level(logging.ERROR):
            report = await manager.teardown_bucket(BucketRef("scratch"), pack_size=1)

        assert fake_backend.delete_batches == [["a", "b"], ["c", "d"], ["e", "f"], ["g"]]
        assert fake_backend.calls[-1] == "delete_bucket"
        assert report.bucket_removed is True
        assert [batch.index for batch in report.failed_batches] == [1]
        assert report.failed_keys == ["c", "d"]
        assert not report.is_complete
        assert "Bulk delete batch failed" in caplog.text

    async def test_per_key_failures_are_reported(self, manager, fake_backend):
        fake_backend.seed("scratch", ["a", "b", "c"])
        fake_backend.rejected_keys = {"b"}

        report = await manager.teardown_bucket(BucketRef("scratch"), pack_size=5)

        assert len(report.failed_batches) == 1
        assert report.failed_keys == ["b"]
        assert "AccessDenied" in report.failed_batches[0].error

    async def test_listing_failure_propagates(self, manager, fake_backend):
        fake_backend.fail_on("list_object_keys", ConnectionError("listing broke"))

        with pytest.raises(ConnectionError):
            await manager.teardown_bucket(BucketRef("scratch"), pack_size=2)

        assert "delete_bucket" not in fake_backend.calls

    async def test_report_to_dict(self, manager, fake_backend):
        fake_backend.seed("scratch", ["a", "b", "c"])
        fake_backend.failing_batches = {0}

        report = await manager.teardown_bucket(BucketRef("scratch"), pack_size=1)
        data = report.to_dict()

        assert data["bucket"] == "scratch"
        assert data["batches"] == 2
        assert data["failed_batches"] == [{"index": 0, "size": 2, "error": "batch 0 rejected"}]
        assert data["failed_keys"] == 2


class TestEnsureBucket:
    """Buckets are created on demand."""

    async def test_creates_missing_bucket(self, manager, fake_backend):
        created = await manager.ensure_bucket(BucketRef("fresh"))

        assert created is True
        assert "fresh" in fake_backend.buckets

    async def test_existing_bucket_is_left_alone(self, manager, fake_backend):
        fake_backend.seed("fresh", [])

        created = await manager.ensure_bucket(BucketRef("fresh"))

        assert created is False
        assert "create_bucket" not in fake_backend.calls

    async def test_concurrent_ensure_creates_one_bucket(self, manager, fake_backend):
        """Two racing callers both succeed and exactly one creates the bucket."""
        results = await asyncio.gather(
            manager.ensure_bucket(BucketRef("fresh")),
            manager.ensure_bucket(BucketRef("fresh")),
        )

        assert sorted(results) == [False, True]
        assert list(fake_backend.buckets) == ["fresh"]
        assert fake_backend.calls.count("create_bucket") == 2
