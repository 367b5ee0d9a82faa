"""Storage metrics for Prometheus monitoring.

Covers gateway operations (presign, upload, download, delete, list,
teardown), transferred object sizes, teardown batches, in-flight operations,
errors by type and presigned URL issuance.

All metrics are registered with the shared REGISTRY so they are exposed via
the /metrics endpoint.

Usage:
    from storage_gateway.infra.storage.metrics import record_batch_operation

    record_batch_operation("teardown", total_count=1000, success_count=1000, failure_count=0)
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

from storage_gateway.infra.metrics.prometheus import REGISTRY

# Network round-trips to the object store, 10ms to 30s
STORAGE_LATENCY_BUCKETS = (0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0)

# 1KB to 100MB
STORAGE_SIZE_BUCKETS = (1024, 10240, 102400, 1048576, 10485760, 52428800, 104857600)

# Keys per bulk-delete call
BATCH_SIZE_BUCKETS = (1, 10, 50, 100, 250, 500, 1000)

storage_operations_total = Counter(
    "storage_operations_total",
    "Total storage operations",
    ["operation", "status"],
    registry=REGISTRY,
)

storage_operation_duration_seconds = Histogram(
    "storage_operation_duration_seconds",
    "Storage operation duration in seconds",
    ["operation"],
    buckets=STORAGE_LATENCY_BUCKETS,
    registry=REGISTRY,
)

storage_file_size_bytes = Histogram(
    "storage_file_size_bytes",
    "Size of objects uploaded/downloaded in bytes",
    ["operation"],
    buckets=STORAGE_SIZE_BUCKETS,
    registry=REGISTRY,
)

storage_batch_size = Histogram(
    "storage_batch_size",
    "Number of keys in batch operations",
    ["operation"],
    buckets=BATCH_SIZE_BUCKETS,
    registry=REGISTRY,
)

storage_batch_success_count = Counter(
    "storage_batch_success_count",
    "Number of keys successfully processed in batch operations",
    ["operation"],
    registry=REGISTRY,
)

storage_batch_failure_count = Counter(
    "storage_batch_failure_count",
    "Number of keys that failed in batch operations",
    ["operation"],
    registry=REGISTRY,
)

storage_operations_active = Gauge(
    "storage_operations_active",
    "Number of in-flight storage operations",
    registry=REGISTRY,
)

storage_errors_total = Counter(
    "storage_errors_total",
    "Storage operation errors by type",
    ["operation", "error_type"],
    registry=REGISTRY,
)

storage_presigned_urls_generated = Counter(
    "storage_presigned_urls_generated",
    "Total presigned URLs generated",
    ["type"],
    registry=REGISTRY,
)


def record_operation_success(
    operation: str,
    duration_seconds: float,
    size_bytes: int | None = None,
) -> None:
    """Record a successful storage operation.

    Args:
        operation: The operation type (e.g., 'upload', 'download', 'delete')
        duration_seconds: Operation duration in seconds
        size_bytes: Optional object size for upload/download operations
    """
    storage_operations_total.labels(operation=operation, status="success").inc()
    storage_operation_duration_seconds.labels(operation=operation).observe(duration_seconds)
    if size_bytes is not None:
        storage_file_size_bytes.labels(operation=operation).observe(size_bytes)


def record_operation_error(
    operation: str,
    error_type: str,
    duration_seconds: float,
) -> None:
    """Record a failed storage operation.

    Args:
        operation: The operation type (e.g., 'upload', 'download', 'delete')
        error_type: The error class name (e.g., 'StorageOperationError')
        duration_seconds: Operation duration in seconds before failure
    """
    storage_operations_total.labels(operation=operation, status="error").inc()
    storage_operation_duration_seconds.labels(operation=operation).observe(duration_seconds)
    storage_errors_total.labels(operation=operation, error_type=error_type).inc()


def record_batch_operation(
    operation: str,
    total_count: int,
    success_count: int,
    failure_count: int,
) -> None:
    """Record one batch of a batch operation.

    Example:
        >>> record_batch_operation("teardown", total_count=3, success_count=3, failure_count=0)
    """
    storage_batch_size.labels(operation=operation).observe(total_count)
    storage_batch_success_count.labels(operation=operation).inc(success_count)
    storage_batch_failure_count.labels(operation=operation).inc(failure_count)


def record_presigned_url(url_type: str = "download") -> None:
    """Count an issued presigned URL."""
    storage_presigned_urls_generated.labels(type=url_type).inc()
