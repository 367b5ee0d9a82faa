"""Unit tests for the object storage API endpoints."""

import logging

import pytest
from fastapi import status

from storage_gateway.infra.storage.exceptions import StoragePermissionError

API = "/api/v1/s3"


@pytest.fixture(autouse=True)
def _info_logging(caplog):
    """Run routes with INFO enabled, as the default LOG_LEVEL does."""
    caplog.set_level(logging.INFO)
    return caplog


class TestReadEndpoints:
    async def test_list_buckets(self, client, fake_backend):
        fake_backend.seed("alpha", [])
        fake_backend.seed("beta", [])

        response = await client.get(API)

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["total"] == 2
        assert [bucket["name"] for bucket in data["buckets"]] == ["alpha", "beta"]

    async def test_list_object_keys(self, client, fake_backend):
        fake_backend.seed("docs", ["b.txt", "a.txt"])

        response = await client.get(f"{API}/docs/files")

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"bucket": "docs", "keys": ["a.txt", "b.txt"], "total": 2}

    async def test_download_returns_attachment(self, client, fake_backend, caplog):
        fake_backend.seed("docs", {"reports/2024.csv": b"a,b\n1,2\n"})

        response = await client.get(f"{API}/file/docs/reports/2024.csv")

        assert response.status_code == status.HTTP_200_OK
        assert "Object downloaded" in caplog.text
        assert response.content == b"a,b\n1,2\n"
        assert response.headers["content-type"] == "application/octet-stream"
        assert 'filename="2024.csv"' in response.headers["content-disposition"]
        assert response.headers["content-disposition"].startswith("attachment")

    async def test_download_missing_object_is_404(self, client):
        response = await client.get(f"{API}/file/docs/missing.txt")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        problem = response.json()
        assert problem["status"] == 404
        assert problem["detail"] == "Object not found: docs/missing.txt"
        assert problem["type"] == "storage-object-not-found"
        assert response.headers["content-type"] == "application/problem+json"

    async def test_presign(self, client, fake_backend):
        response = await client.get(f"{API}/docs/reports/2024.csv")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["bucket"] == "docs"
        assert data["key"] == "reports/2024.csv"
        assert data["expires_in_seconds"] == 86400
        assert data["url"].startswith("http://127.0.0.1:9000/docs/reports/2024.csv")
        assert fake_backend.store_calls == ["generate_presigned_download_url"]

    async def test_files_segment_routes_to_listing(self, client, fake_backend):
        fake_backend.seed("docs", ["files"])

        response = await client.get(f"{API}/docs/files")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["keys"] == ["files"]
        assert "generate_presigned_download_url" not in fake_backend.store_calls


class TestWriteEndpoints:
    async def test_create_with_defaults(self, client, fake_backend):
        response = await client.post(API, files={"file": ("a.txt", b"hello", "text/plain")})

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["bucket"] == "academy-bucket"
        assert data["key"].startswith("uploaded-file-")
        assert fake_backend.buckets["academy-bucket"][data["key"]] == (b"hello", "text/plain")

    async def test_create_with_bucket_and_custom_name(self, client, fake_backend):
        response = await client.post(
            API,
            params={"bucket_name": "docs", "custom_file_name": "notes/a.txt"},
            files={"file": ("a.txt", b"hello", "text/plain")},
        )

        assert response.json() == {"bucket": "docs", "key": "notes/a.txt"}
        assert "notes/a.txt" in fake_backend.buckets["docs"]

    async def test_create_logs_upload_filename(self, client, fake_backend, caplog):
        response = await client.post(
            API,
            params={"bucket_name": "docs", "custom_file_name": "a.txt"},
            files={"file": ("report.txt", b"hello", "text/plain")},
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"bucket": "docs", "key": "a.txt"}
        record = next(r for r in caplog.records if r.getMessage() == "Object created")
        assert record.upload_filename == "report.txt"
        assert record.bucket == "docs"
        assert record.key == "a.txt"

    async def test_create_empty_file_is_400(self, client, fake_backend):
        response = await client.post(API, files={"file": ("empty.txt", b"", "text/plain")})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"] == "Upload stream is empty"
        assert fake_backend.store_calls == []

    async def test_replace_overwrites(self, client, fake_backend):
        fake_backend.seed("docs", {"k.txt": b"old"})

        response = await client.put(
            f"{API}/docs/k.txt", files={"file": ("k.txt", b"new", "text/plain")}
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"bucket": "docs", "key": "k.txt"}
        assert fake_backend.buckets["docs"]["k.txt"][0] == b"new"

    async def test_replace_empty_file_is_400(self, client):
        response = await client.put(
            f"{API}/docs/k.txt", files={"file": ("k.txt", b"", "text/plain")}
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST


class TestDeleteEndpoints:
    async def test_delete_object(self, client, fake_backend, caplog):
        fake_backend.seed("docs", {"k.txt": b"data"})

        response = await client.delete(f"{API}/docs/k.txt")

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert "k.txt" not in fake_backend.buckets["docs"]
        assert "Object deleted" in caplog.text

    async def test_delete_missing_object_is_404(self, client):
        response = await client.delete(f"{API}/docs/missing.txt")

        assert response.status_code == status.HTTP_404_NOT_FOUND

    async def test_teardown_with_pack_size(self, client, fake_backend):
        fake_backend.seed("scratch", ["a", "b", "c", "d", "e"])

        response = await client.delete(f"{API}/scratch", params={"pack_size": 2})

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert response.headers["x-teardown-failed-batches"] == "0"
        assert fake_backend.delete_batches == [["a", "b", "c"], ["d", "e"]]
        assert "scratch" not in fake_backend.buckets

    async def test_teardown_reports_failed_batches(self, client, fake_backend):
        fake_backend.seed("scratch", ["a", "b", "c", "d"])
        fake_backend.failing_batches = {0}

        response = await client.delete(f"{API}/scratch", params={"pack_size": 1})

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert response.headers["x-teardown-failed-batches"] == "1"

    async def test_teardown_negative_pack_size_is_400(self, client, fake_backend):
        response = await client.delete(f"{API}/scratch", params={"pack_size": -1})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert fake_backend.store_calls == []

    async def test_teardown_removal_failure_is_500(self, client, fake_backend):
        fake_backend.seed("scratch", [])
        fake_backend.fail_on("delete_bucket", StoragePermissionError("Delete_bucket failed: denied"))

        response = await client.delete(f"{API}/scratch")

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        problem = response.json()
        assert problem["detail"] == "Delete_bucket failed: denied"
        assert problem["extra"]["operation"] == "teardown"


class TestAvailability:
    @pytest.fixture
    async def stopped_gateway(self, gateway):
        await gateway.shutdown()
        return gateway

    async def test_storage_not_ready_is_503(self, client, stopped_gateway):
        response = await client.get(API)

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.json()["type"] == "storage-unavailable"

    async def test_request_id_is_echoed(self, client):
        response = await client.get(API, headers={"X-Request-ID": "req-42"})

        assert response.headers["x-request-id"] == "req-42"

    async def test_error_body_carries_request_id(self, client):
        response = await client.get(f"{API}/file/docs/missing.txt", headers={"X-Request-ID": "r-7"})

        assert response.json()["request_id"] == "r-7"
