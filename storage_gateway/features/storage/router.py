"""Object storage API endpoints.

Gateway errors are ``AppException`` subclasses and are rendered as RFC 7807
problem details by the application exception handlers:

- ``InvalidRequestError`` -> 400
- ``ObjectNotFoundError`` -> 404
- ``StorageOperationError`` -> 500
- storage not ready -> 503
"""

from __future__ import annotations

import logging
from typing import Annotated
from urllib.parse import quote

from fastapi import APIRouter, File, Query, Response, UploadFile, status

from .dependencies import GatewayDep
from .schemas import (
    BucketListResponse,
    BucketResponse,
    ObjectKeyListResponse,
    ObjectKeyResponse,
    PresignedUrlResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/s3", tags=["storage"])

TEARDOWN_FAILED_BATCHES_HEADER = "X-Teardown-Failed-Batches"


def _content_disposition(key: str) -> str:
    filename = key.rsplit("/", 1)[-1]
    quoted = quote(filename)
    return f"attachment; filename=\"{quoted}\"; filename*=UTF-8''{quoted}"


# ============================================================================
# Read Endpoints
# ============================================================================


@router.get(
    "",
    response_model=BucketListResponse,
    summary="List buckets",
    description="List every bucket visible to the configured credentials.",
)
async def list_buckets(gateway: GatewayDep) -> BucketListResponse:
    buckets = [
        BucketResponse(name=bucket.name, creation_date=bucket.creation_date)
        async for bucket in gateway.list_buckets()
    ]
    return BucketListResponse(buckets=buckets, total=len(buckets))


@router.get(
    "/{bucket}/files",
    response_model=ObjectKeyListResponse,
    summary="List object keys",
    description="List every object key in a bucket, in store listing order.",
)
async def list_objects(bucket: str, gateway: GatewayDep) -> ObjectKeyListResponse:
    keys = [key async for key in gateway.list_objects(bucket)]
    return ObjectKeyListResponse(bucket=bucket, keys=keys, total=len(keys))


@router.get(
    "/file/{bucket}/{key:path}",
    summary="Download object",
    description="Return the full object body as an attachment.",
    responses={
        200: {"content": {"application/octet-stream": {}}},
        404: {"description": "Object not found or deleted"},
    },
)
async def download_object(bucket: str, key: str, gateway: GatewayDep) -> Response:
    result = await gateway.download(bucket, key)

    logger.info(
        "Object downloaded",
        extra={"bucket": bucket, "key": key, "size_bytes": result.size_bytes},
    )

    return Response(
        content=result.data,
        media_type="application/octet-stream",
        headers={"Content-Disposition": _content_disposition(key)},
    )


@router.get(
    "/{bucket}/{key:path}",
    response_model=PresignedUrlResponse,
    summary="Get presigned download URL",
    description=(
        "Issue a URL granting read access to the object for 24 hours. "
        "The object is not checked for existence. A key named exactly `files`, "
        "or a key containing `/` in a bucket named `file`, matches the listing or download "
        "route instead; presign those through the CLI."
    ),
)
async def presign_download(bucket: str, key: str, gateway: GatewayDep) -> PresignedUrlResponse:
    grant = await gateway.presign_download(bucket, key)
    return PresignedUrlResponse(
        bucket=grant.ref.bucket.name,
        key=grant.ref.key,
        url=grant.url,
        expires_in_seconds=int(grant.expires_in.total_seconds()),
        expires_at=grant.expires_at,
    )


# ============================================================================
# Write Endpoints
# ============================================================================


@router.post(
    "",
    response_model=ObjectKeyResponse,
    summary="Upload object",
    description=(
        "Upload a file. The bucket defaults to the configured default bucket and "
        "the key to a generated name. The bucket is created when missing."
    ),
)
async def create_object(
    gateway: GatewayDep,
    file: Annotated[UploadFile, File(description="File to upload")],
    bucket_name: Annotated[str | None, Query(description="Target bucket")] = None,
    custom_file_name: Annotated[str | None, Query(description="Object key to use")] = None,
) -> ObjectKeyResponse:
    ref = await gateway.create_object(
        file.file,
        bucket=bucket_name,
        custom_name=custom_file_name,
        length=file.size,
        content_type=file.content_type,
    )

    logger.info(
        "Object created",
        extra={"bucket": ref.bucket.name, "key": ref.key, "upload_filename": file.filename},
    )

    return ObjectKeyResponse(bucket=ref.bucket.name, key=ref.key)


@router.put(
    "/{bucket}/{key:path}",
    response_model=ObjectKeyResponse,
    summary="Upload or replace object",
    description="Store the file under the given key, replacing any existing object.",
)
async def upload_or_replace(
    bucket: str,
    key: str,
    gateway: GatewayDep,
    file: Annotated[UploadFile, File(description="File to upload")],
) -> ObjectKeyResponse:
    stored_key = await gateway.upload_or_replace(
        bucket,
        key,
        file.file,
        length=file.size,
        content_type=file.content_type,
    )
    return ObjectKeyResponse(bucket=bucket, key=stored_key)


# ============================================================================
# Delete Endpoints
# ============================================================================


@router.delete(
    "/{bucket}/{key:path}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete object",
    description="Delete an object after checking that it exists.",
    responses={404: {"description": "Object not found or deleted"}},
)
async def delete_object(bucket: str, key: str, gateway: GatewayDep) -> Response:
    await gateway.delete_object(bucket, key)

    logger.info("Object deleted", extra={"bucket": bucket, "key": key})

    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/{bucket}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Tear down bucket",
    description=(
        "Delete every object in the bucket in batches, then the bucket itself. "
        "A batch is flushed once it holds more than pack_size keys. Failed "
        f"batches are logged and counted in the {TEARDOWN_FAILED_BATCHES_HEADER} header."
    ),
)
async def teardown_bucket(
    bucket: str,
    gateway: GatewayDep,
    pack_size: Annotated[
        int | None,
        Query(description="Flush threshold (>= 0); defaults to STORAGE_TEARDOWN_PACK_SIZE"),
    ] = None,
) -> Response:
    report = await gateway.teardown_bucket(bucket, pack_size=pack_size)

    return Response(
        status_code=status.HTTP_204_NO_CONTENT,
        headers={TEARDOWN_FAILED_BATCHES_HEADER: str(len(report.failed_batches))},
    )
