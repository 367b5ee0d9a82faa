"""Unit tests for GatewayService operations and its error boundary."""

from datetime import timedelta
from io import BytesIO

import pytest

from storage_gateway.core.settings.storage import StorageSettings
from storage_gateway.infra.storage.exceptions import (
    InvalidRequestError,
    ObjectNotFoundError,
    StorageNotConfiguredError,
    StorageOperationError,
    StoragePermissionError,
)
from storage_gateway.infra.storage.service import (
    GatewayService,
    get_gateway_service,
    reset_gateway_service,
)


class TestUploadOrReplace:
    """Uploads validate input first and create the bucket on demand."""

    async def test_round_trip_is_byte_identical(self, gateway, fake_backend):
        payload = b"\x00\x01binary\xffpayload" * 10

        key = await gateway.upload_or_replace("docs", "a/b/c.bin", BytesIO(payload))
        result = await gateway.download("docs", key)

        assert key == "a/b/c.bin"
        assert result.data == payload

    async def test_missing_bucket_is_created_before_put(self, gateway, fake_backend):
        await gateway.upload_or_replace("fresh", "k", BytesIO(b"data"))

        assert fake_backend.store_calls == ["bucket_exists", "create_bucket", "put_object"]

    async def test_existing_object_is_replaced(self, gateway, fake_backend):
        fake_backend.seed("docs", {"k": b"old"})

        await gateway.upload_or_replace("docs", "k", BytesIO(b"new"))

        assert fake_backend.buckets["docs"]["k"][0] == b"new"

    async def test_empty_stream_rejected_without_store_calls(self, gateway, fake_backend):
        with pytest.raises(InvalidRequestError, match="empty"):
            await gateway.upload_or_replace("docs", "k", BytesIO(b""))

        assert fake_backend.store_calls == []

    async def test_absent_stream_rejected_without_store_calls(self, gateway, fake_backend):
        with pytest.raises(InvalidRequestError, match="required"):
            await gateway.upload_or_replace("docs", "k", None)

        assert fake_backend.store_calls == []

    async def test_measures_remaining_bytes_from_position(self, gateway, fake_backend):
        stream = BytesIO(b"skipthis")
        stream.seek(4)

        await gateway.upload_or_replace("docs", "k", stream)

        assert fake_backend.buckets["docs"]["k"][0] == b"this"

    async def test_stream_closed_when_bucket_creation_fails(self, gateway, fake_backend):
        fake_backend.fail_on("create_bucket", ConnectionError("refused"))
        stream = BytesIO(b"data")

        with pytest.raises(StorageOperationError):
            await gateway.upload_or_replace("fresh", "k", stream)

        assert stream.closed
        assert "put_object" not in fake_backend.calls

    async def test_blank_bucket_rejected(self, gateway, fake_backend):
        with pytest.raises(InvalidRequestError):
            await gateway.upload_or_replace(" ", "k", BytesIO(b"data"))

        assert fake_backend.store_calls == []


class TestCreateObject:
    async def test_defaults_bucket_and_generated_name(self, gateway, fake_backend):
        ref = await gateway.create_object(BytesIO(b"data"))

        assert ref.bucket.name == "academy-bucket"
        assert ref.key.startswith("uploaded-file-")
        assert ref.key in fake_backend.buckets["academy-bucket"]

    async def test_custom_bucket_and_name(self, gateway, fake_backend):
        ref = await gateway.create_object(BytesIO(b"data"), bucket="docs", custom_name="x.txt")

        assert str(ref) == "docs/x.txt"

    async def test_generated_names_are_unique(self, gateway):
        first = await gateway.create_object(BytesIO(b"1"))
        second = await gateway.create_object(BytesIO(b"2"))

        assert first.key != second.key


class TestDownloadAndDelete:
    async def test_download_of_never_written_key_raises_not_found(self, gateway):
        with pytest.raises(ObjectNotFoundError):
            await gateway.download("docs", "never-written")

    async def test_delete_existing_object(self, gateway, fake_backend):
        fake_backend.seed("docs", {"k": b"data"})

        await gateway.delete_object("docs", "k")

        assert fake_backend.store_calls == ["stat_object", "delete_object"]
        assert "k" not in fake_backend.buckets["docs"]

    async def test_delete_missing_object_raises_not_found(self, gateway, fake_backend):
        with pytest.raises(ObjectNotFoundError):
            await gateway.delete_object("docs", "missing")

        assert "delete_object" not in fake_backend.calls

    async def test_delete_of_delete_marked_object_raises_not_found(self, gateway, fake_backend):
        fake_backend.delete_markers.add(("docs", "k"))

        with pytest.raises(ObjectNotFoundError):
            await gateway.delete_object("docs", "k")


class TestListingsAndPresign:
    async def test_list_buckets(self, gateway, fake_backend):
        fake_backend.seed("alpha", [])
        fake_backend.seed("beta", [])

        names = [bucket.name async for bucket in gateway.list_buckets()]

        assert names == ["alpha", "beta"]

    async def test_list_objects_in_listing_order(self, gateway, fake_backend):
        fake_backend.seed("docs", ["b", "a", "c"])

        keys = [key async for key in gateway.list_objects("docs")]

        assert keys == ["a", "b", "c"]

    async def test_list_objects_of_empty_bucket(self, gateway, fake_backend):
        fake_backend.seed("docs", [])

        assert [key async for key in gateway.list_objects("docs")] == []

    async def test_listing_failure_becomes_operation_error(self, gateway, fake_backend):
        fake_backend.fail_on("list_object_keys", ConnectionError("socket closed"))

        with pytest.raises(StorageOperationError, match="socket closed") as exc_info:
            [key async for key in gateway.list_objects("docs")]

        assert exc_info.value.extra["operation"] == "list_objects"

    async def test_presign_issues_24_hour_url_without_lookup(self, gateway, fake_backend):
        grant = await gateway.presign_download("docs", "not-there.txt")

        assert grant.expires_in == timedelta(hours=24)
        assert grant.expires_at - grant.issued_at == timedelta(hours=24)
        assert "X-Amz-Expires=86400" in grant.url
        assert fake_backend.store_calls == ["generate_presigned_download_url"]

    async def test_presign_requires_key(self, gateway):
        with pytest.raises(InvalidRequestError):
            await gateway.presign_download("docs", "")


class TestTeardown:
    async def test_uses_configured_pack_size_by_default(self, gateway, fake_backend):
        fake_backend.seed("scratch", ["a", "b", "c", "d", "e"])

        report = await gateway.teardown_bucket("scratch")

        assert report.pack_size == 2
        assert fake_backend.delete_batches == [["a", "b", "c"], ["d", "e"]]

    async def test_failed_batch_still_succeeds(self, gateway, fake_backend):
        fake_backend.seed("scratch", ["a", "b", "c", "d"])
        fake_backend.failing_batches = {0}

        report = await gateway.teardown_bucket("scratch", pack_size=1)

        assert report.bucket_removed
        assert len(report.failed_batches) == 1

    async def test_bucket_removal_failure_becomes_operation_error(self, gateway, fake_backend):
        fake_backend.seed("scratch", ["a"])
        fake_backend.fail_on(
            "delete_bucket",
            StoragePermissionError("Delete_bucket failed: Access Denied"),
        )

        with pytest.raises(StorageOperationError) as exc_info:
            await gateway.teardown_bucket("scratch")

        assert exc_info.value.status_code == 500
        assert exc_info.value.message == "Delete_bucket failed: Access Denied"
        assert exc_info.value.extra["cause_code"] == "STORAGE_PERMISSION_DENIED"

    async def test_negative_pack_size_is_validation_error(self, gateway):
        with pytest.raises(InvalidRequestError):
            await gateway.teardown_bucket("scratch", pack_size=-5)


class TestErrorBoundary:
    """Store failures surface as StorageOperationError with the original message."""

    async def test_unexpected_exception_is_wrapped(self, gateway, fake_backend):
        fake_backend.seed("docs", {"k": b"data"})
        fake_backend.fail_on("get_object", TimeoutError("read timed out"))

        with pytest.raises(StorageOperationError) as exc_info:
            await gateway.download("docs", "k")

        error = exc_info.value
        assert error.message == "read timed out"
        assert error.extra == {
            "operation": "download",
            "error_type": "TimeoutError",
            "bucket": "docs",
            "key": "k",
        }
        assert isinstance(error.__cause__, TimeoutError)

    async def test_backend_storage_error_keeps_message(self, gateway, fake_backend):
        fake_backend.fail_on("stat_object", StoragePermissionError("Stat failed: Access Denied"))

        with pytest.raises(StorageOperationError, match="Stat failed: Access Denied"):
            await gateway.delete_object("docs", "k")


class TestServiceLifecycle:
    async def test_operations_require_startup(self, storage_settings, fake_backend):
        service = GatewayService(settings=storage_settings, backend=fake_backend)

        with pytest.raises(StorageNotConfiguredError) as exc_info:
            await service.download("docs", "k")

        assert exc_info.value.status_code == 503

    async def test_disabled_storage_is_never_ready(self, fake_backend):
        service = GatewayService(settings=StorageSettings(enabled=False), backend=fake_backend)

        await service.startup()

        assert not service.is_ready
        assert fake_backend.calls == []

    async def test_startup_and_shutdown(self, storage_settings, fake_backend):
        service = GatewayService(settings=storage_settings, backend=fake_backend)

        await service.startup()
        assert service.is_ready
        assert await service.health_check() is True

        await service.shutdown()
        assert not service.is_ready
        assert await service.health_check() is False

    def test_singleton(self):
        assert get_gateway_service() is get_gateway_service()
        first = get_gateway_service()
        reset_gateway_service()
        assert get_gateway_service() is not first
