"""Unit tests for application startup in normal and degraded mode."""

import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from storage_gateway.app import lifespan as lifespan_module
from storage_gateway.infra.storage.exceptions import StorageError


@pytest.fixture
def failing_gateway(monkeypatch):
    gateway = MagicMock()
    gateway.startup = AsyncMock(
        side_effect=StorageError("connection refused", code="STORAGE_INITIALIZATION_ERROR")
    )
    gateway.is_ready = False
    monkeypatch.setattr(lifespan_module, "get_gateway_service", lambda: gateway)
    return gateway


class TestStartupStorage:
    async def test_degraded_mode_by_default(self, failing_gateway, caplog):
        with caplog.at_level(logging.WARNING):
            await lifespan_module.startup_storage()

        failing_gateway.startup.assert_awaited_once()
        assert "continuing in degraded mode" in caplog.text

    async def test_required_storage_fails_startup(self, failing_gateway, monkeypatch):
        monkeypatch.setenv("STORAGE_STARTUP_REQUIRE_STORAGE", "true")

        with pytest.raises(StorageError):
            await lifespan_module.startup_storage()

    async def test_disabled_storage_is_skipped(self, failing_gateway, monkeypatch):
        monkeypatch.setenv("STORAGE_ENABLED", "false")

        await lifespan_module.startup_storage()

        failing_gateway.startup.assert_not_awaited()

    async def test_shutdown_skips_unready_gateway(self, failing_gateway):
        failing_gateway.shutdown = AsyncMock()

        await lifespan_module.shutdown_storage()

        failing_gateway.shutdown.assert_not_awaited()
