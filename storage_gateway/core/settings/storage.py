"""S3-compatible object storage configuration settings.

Environment variables use STORAGE_ prefix.
Example: STORAGE_ENDPOINT="http://127.0.0.1:9000"
         STORAGE_DEFAULT_BUCKET="academy-bucket"

Supports:
- MinIO (default, local endpoint without TLS)
- AWS S3 (unset the endpoint)
- LocalStack or any other S3-compatible store
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import Field, SecretStr, computed_field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .yaml_sources import create_storage_yaml_source


class StorageBackendType(StrEnum):
    """Supported object store flavours."""

    S3 = "s3"
    MINIO = "minio"


class StorageSettings(BaseSettings):
    """S3-compatible object storage settings.

    Environment variables use STORAGE_ prefix.
    Example: STORAGE_ACCESS_KEY=minioadmin STORAGE_SECRET_KEY=minioadmin
    """

    # ──────────────────────────────────────────────────────────────
    # Enable/Disable toggle
    # ──────────────────────────────────────────────────────────────

    enabled: bool = Field(
        default=True,
        description="Enable the object storage backend",
    )

    backend: StorageBackendType = Field(
        default=StorageBackendType.MINIO,
        description="Object store flavour (s3 or minio)",
    )

    # ──────────────────────────────────────────────────────────────
    # S3 Connection Configuration
    # ──────────────────────────────────────────────────────────────

    endpoint: str | None = Field(
        default="http://127.0.0.1:9000",
        description="S3-compatible endpoint URL (for MinIO/LocalStack). None for AWS S3.",
    )

    region: str = Field(
        default="us-east-1",
        description="Region used for request signing and bucket creation",
    )

    access_key: SecretStr | None = Field(
        default=None,
        description="S3 access key ID",
    )

    secret_key: SecretStr | None = Field(
        default=None,
        description="S3 secret access key",
    )

    use_ssl: bool = Field(
        default=False,
        description="Use SSL/TLS for S3 connections",
    )

    verify_ssl: bool = Field(
        default=True,
        description="Verify SSL certificates (set False for self-signed certs)",
    )

    max_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Maximum number of transport-level retry attempts",
    )

    retry_mode: str = Field(
        default="standard",
        description="botocore retry mode: standard, adaptive, or legacy",
    )

    timeout: int = Field(
        default=30,
        ge=1,
        le=300,
        description="Connect/read timeout in seconds",
    )

    max_pool_connections: int = Field(
        default=10,
        ge=1,
        le=200,
        description="Maximum number of connections in the connection pool",
    )

    # ──────────────────────────────────────────────────────────────
    # Gateway behaviour
    # ──────────────────────────────────────────────────────────────

    default_bucket: str = Field(
        default="academy-bucket",
        min_length=3,
        max_length=63,
        description="Bucket used by create-uploads when the caller names none",
    )

    generated_name_prefix: str = Field(
        default="uploaded-file-",
        description="Prefix for generated object keys when the caller names none",
    )

    teardown_pack_size: int = Field(
        default=999,
        ge=0,
        description="Flush threshold for bucket teardown (batches hold pack_size + 1 keys)",
    )

    streaming_chunk_size: int = Field(
        default=1024 * 1024,
        ge=1024,
        le=104857600,
        description="Chunk size in bytes when reading object bodies",
    )

    # ──────────────────────────────────────────────────────────────
    # Health Check / Lifecycle Configuration
    # ──────────────────────────────────────────────────────────────

    health_check_enabled: bool = Field(
        default=True,
        description="Include the object store in health checks",
    )

    startup_require_storage: bool = Field(
        default=False,
        description="Fail application startup if storage is unavailable (False = degraded mode)",
    )

    # ──────────────────────────────────────────────────────────────
    # Validators
    # ──────────────────────────────────────────────────────────────

    @field_validator("retry_mode")
    @classmethod
    def _validate_retry_mode(cls, value: str) -> str:
        """Validate retry_mode is one of the allowed values."""
        allowed_modes = {"standard", "adaptive", "legacy"}
        if value not in allowed_modes:
            raise ValueError(f"retry_mode must be one of {allowed_modes}, got {value}")
        return value

    @model_validator(mode="after")
    def _validate_credential_consistency(self) -> StorageSettings:
        """Both credentials are provided together, or neither (IAM/env chain)."""
        if (self.access_key is None) != (self.secret_key is None):
            raise ValueError(
                "Both access_key and secret_key must be provided together when using "
                "static credentials. Provide both or neither."
            )
        return self

    # ──────────────────────────────────────────────────────────────
    # Computed Properties
    # ──────────────────────────────────────────────────────────────

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_configured(self) -> bool:
        """Check if storage is enabled (credential consistency is validated above)."""
        return self.enabled

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_minio(self) -> bool:
        """Check if configured for MinIO/S3-compatible (has custom endpoint)."""
        return self.endpoint is not None

    # ──────────────────────────────────────────────────────────────
    # Helper Methods
    # ──────────────────────────────────────────────────────────────

    def get_boto3_config(self) -> dict[str, Any]:
        """Get keyword arguments for creating an aioboto3 S3 client.

        Returns:
            Dictionary with region, SSL flags, endpoint and static
            credentials when they are provided.
        """
        if not self.is_configured:
            raise ValueError("Storage not configured")

        config: dict[str, Any] = {
            "region_name": self.region,
            "use_ssl": self.use_ssl,
            "verify": self.verify_ssl,
        }

        if self.access_key is not None and self.secret_key is not None:
            config["aws_access_key_id"] = self.access_key.get_secret_value()
            config["aws_secret_access_key"] = self.secret_key.get_secret_value()

        if self.endpoint:
            config["endpoint_url"] = self.endpoint

        return config

    # ──────────────────────────────────────────────────────────────
    # Model Configuration
    # ──────────────────────────────────────────────────────────────

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        populate_by_name=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: Any,
        env_settings: Any,
        dotenv_settings: Any,
        file_secret_settings: Any,
    ) -> tuple[Any, ...]:
        """Customize settings source precedence: init > yaml > env > dotenv > secrets."""
        return (
            init_settings,
            create_storage_yaml_source(settings_cls),
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )
