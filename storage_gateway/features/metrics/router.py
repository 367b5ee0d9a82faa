"""Prometheus metrics endpoint.

Endpoints:
    GET /metrics - Prometheus scrape endpoint

Metrics Exposed:
    HTTP Request Metrics:
        - http_requests_total - Request count by method, path, status
        - http_request_duration_seconds - Request latency histogram

    Storage Metrics:
        - storage_operations_total / storage_operation_duration_seconds
        - storage_operations_active - In-flight operations gauge
        - storage_batch_size / storage_batch_success_count / storage_batch_failure_count
        - storage_presigned_urls_generated
"""

from __future__ import annotations

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from storage_gateway.infra.metrics.prometheus import REGISTRY

router = APIRouter(tags=["observability"])


@router.get("/metrics")
async def metrics() -> Response:
    """Expose Prometheus metrics in text exposition format."""
    data = generate_latest(REGISTRY)
    return Response(
        content=data,
        media_type=CONTENT_TYPE_LATEST,
        headers={"Cache-Control": "no-cache, no-store, must-revalidate"},
    )
