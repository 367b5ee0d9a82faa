"""Pytest configuration and shared fixtures.

Organization:
    - Environment: settings that keep tests off real infrastructure
    - Storage Fixtures: in-memory backend and a started gateway service
    - Application Fixtures: FastAPI app and HTTP client
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import AsyncGenerator, AsyncIterator, Awaitable, Callable, Sequence
from datetime import UTC, datetime
from typing import BinaryIO

import pytest
from httpx import ASGITransport, AsyncClient

from storage_gateway.core.settings import clear_all_caches
from storage_gateway.core.settings.storage import StorageSettings
from storage_gateway.infra.storage.backends.protocol import (
    BucketInfo,
    DeleteFailure,
    ObjectStat,
    UploadResult,
)
from storage_gateway.infra.storage.service import GatewayService, reset_gateway_service

# Ensure tests run without external infrastructure or stray config files
os.environ.setdefault("APP_ENVIRONMENT", "test")
os.environ.setdefault("APP_CONFIG_DIR", "/nonexistent")
os.environ.setdefault("LOG_CONFIG_DIR", "/nonexistent")
os.environ.setdefault("STORAGE_CONFIG_DIR", "/nonexistent")
os.environ.setdefault("LOG_JSON_LOGS", "false")
os.environ.setdefault("LOG_FILE_ENABLED", "false")
os.environ.setdefault("STORAGE_ENDPOINT", "http://127.0.0.1:9000")


# ============================================================================
# In-memory Storage Backend
# ============================================================================


class FakeBackend:
    """In-memory StorageBackend that records calls and injects faults.

    Attributes:
        calls: Method names in call order
        delete_batches: Key lists passed to delete_objects, in call order
        failures: Method name -> exception raised on every call
        failing_batches: Zero-based delete_objects call indexes that raise
        rejected_keys: Keys delete_objects reports as per-key failures
    """

    backend_name = "memory"

    def __init__(self, chunk_size: int = 4) -> None:
        self.buckets: dict[str, dict[str, tuple[bytes, str]]] = {}
        self.delete_markers: set[tuple[str, str]] = set()
        self.calls: list[str] = []
        self.delete_batches: list[list[str]] = []
        self.failures: dict[str, Exception] = {}
        self.failing_batches: set[int] = set()
        self.rejected_keys: set[str] = set()
        self.chunk_size = chunk_size
        self._ready = False

    # -- helpers -------------------------------------------------------------

    def seed(self, bucket: str, objects: dict[str, bytes] | Sequence[str]) -> None:
        store = self.buckets.setdefault(bucket, {})
        if isinstance(objects, dict):
            for key, data in objects.items():
                store[key] = (data, "application/octet-stream")
        else:
            for key in objects:
                store[key] = (b"x", "application/octet-stream")

    def fail_on(self, method: str, error: Exception) -> None:
        self.failures[method] = error

    def _record(self, method: str) -> None:
        self.calls.append(method)
        if method in self.failures:
            raise self.failures[method]

    @property
    def store_calls(self) -> list[str]:
        """Calls that reach the store (lifecycle calls excluded)."""
        return [c for c in self.calls if c not in {"startup", "shutdown", "health_check"}]

    # -- lifecycle -----------------------------------------------------------

    @property
    def is_ready(self) -> bool:
        return self._ready

    async def startup(self) -> None:
        self._record("startup")
        self._ready = True

    async def shutdown(self) -> None:
        self._record("shutdown")
        self._ready = False

    async def health_check(self) -> bool:
        self._record("health_check")
        return self._ready

    # -- buckets -------------------------------------------------------------

    async def bucket_exists(self, bucket: str) -> bool:
        self._record("bucket_exists")
        exists = bucket in self.buckets
        await asyncio.sleep(0)
        return exists

    async def create_bucket(self, bucket: str) -> bool:
        self._record("create_bucket")
        await asyncio.sleep(0)
        if bucket in self.buckets:
            return False
        self.buckets[bucket] = {}
        return True

    async def delete_bucket(self, bucket: str) -> None:
        self._record("delete_bucket")
        self.buckets.pop(bucket, None)

    async def list_buckets(self) -> AsyncIterator[BucketInfo]:
        self._record("list_buckets")
        for name in sorted(self.buckets):
            yield BucketInfo(name=name, creation_date=datetime(2024, 1, 15, tzinfo=UTC))

    # -- objects -------------------------------------------------------------

    async def stat_object(self, bucket: str, key: str) -> ObjectStat | None:
        self._record("stat_object")
        if (bucket, key) in self.delete_markers:
            return ObjectStat(
                key=key,
                size_bytes=0,
                content_type=None,
                last_modified=None,
                etag=None,
                delete_marker=True,
            )
        entry = self.buckets.get(bucket, {}).get(key)
        if entry is None:
            return None
        data, content_type = entry
        return ObjectStat(
            key=key,
            size_bytes=len(data),
            content_type=content_type,
            last_modified=datetime.now(UTC),
            etag="etag",
        )

    async def put_object(
        self,
        bucket: str,
        key: str,
        data: BinaryIO,
        length: int,
        content_type: str,
    ) -> UploadResult:
        self._record("put_object")
        body = data.read(length)
        self.buckets.setdefault(bucket, {})[key] = (body, content_type)
        self.delete_markers.discard((bucket, key))
        return UploadResult(key=key, bucket=bucket, etag="etag", size_bytes=len(body))

    async def get_object(
        self,
        bucket: str,
        key: str,
        sink: Callable[[bytes], Awaitable[None]],
    ) -> int:
        self._record("get_object")
        data, _ = self.buckets[bucket][key]
        for start in range(0, len(data), self.chunk_size):
            await sink(data[start : start + self.chunk_size])
        return len(data)

    async def delete_object(self, bucket: str, key: str) -> None:
        self._record("delete_object")
        self.buckets.get(bucket, {}).pop(key, None)

    async def list_object_keys(self, bucket: str, prefix: str = "") -> AsyncIterator[str]:
        self._record("list_object_keys")
        for key in sorted(self.buckets.get(bucket, {})):
            if key.startswith(prefix):
                yield key

    async def delete_objects(self, bucket: str, keys: Sequence[str]) -> list[DeleteFailure]:
        self._record("delete_objects")
        index = len(self.delete_batches)
        self.delete_batches.append(list(keys))
        if index in self.failing_batches:
            raise ConnectionError(f"batch {index} rejected")

        failures = []
        for key in keys:
            if key in self.rejected_keys:
                failures.append(DeleteFailure(key=key, code="AccessDenied", message="Access Denied"))
            else:
                self.buckets.get(bucket, {}).pop(key, None)
        return failures

    async def generate_presigned_download_url(self, bucket: str, key: str, expires_in: int) -> str:
        self._record("generate_presigned_download_url")
        return f"http://127.0.0.1:9000/{bucket}/{key}?X-Amz-Expires={expires_in}"


# ============================================================================
# Settings / Storage Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def _isolate_settings_and_singletons():
    """Reset cached settings and the gateway singleton around every test."""
    clear_all_caches()
    reset_gateway_service()
    yield
    clear_all_caches()
    reset_gateway_service()


@pytest.fixture
def storage_settings() -> StorageSettings:
    return StorageSettings(
        enabled=True,
        endpoint="http://127.0.0.1:9000",
        default_bucket="academy-bucket",
        teardown_pack_size=2,
    )


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
async def gateway(storage_settings, fake_backend) -> AsyncGenerator[GatewayService]:
    """Started GatewayService over the in-memory backend."""
    service = GatewayService(settings=storage_settings, backend=fake_backend)
    await service.startup()
    fake_backend.calls.clear()
    yield service
    await service.shutdown()


# ============================================================================
# Application Fixtures
# ============================================================================


@pytest.fixture
def app(gateway):
    """FastAPI application whose storage routes use the in-memory gateway."""
    from storage_gateway.app.main import create_app
    from storage_gateway.infra.storage.dependencies import get_gateway_service

    application = create_app()
    application.dependency_overrides[get_gateway_service] = lambda: gateway
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient]:
    """Async HTTP client bound to the app (lifespan is not run)."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
