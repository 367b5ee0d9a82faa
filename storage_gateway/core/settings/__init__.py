"""Modular Pydantic Settings v2 configuration.

Import settings via cached loaders:
    from storage_gateway.core.settings import get_storage_settings

Configuration precedence (highest to lowest):
    1. init kwargs (testing/overrides)
    2. YAML/conf.d files (optional, local/dev)
    3. Environment variables (production)
    4. .env file (development only)
    5. secrets_dir (Kubernetes/Docker secrets)
"""

from __future__ import annotations

from .app import AppSettings
from .loader import (
    clear_all_caches,
    get_app_settings,
    get_logging_settings,
    get_storage_settings,
)
from .logs import LoggingSettings
from .storage import StorageBackendType, StorageSettings

__all__ = [
    "AppSettings",
    "LoggingSettings",
    "StorageBackendType",
    "StorageSettings",
    "clear_all_caches",
    "get_app_settings",
    "get_logging_settings",
    "get_storage_settings",
]
