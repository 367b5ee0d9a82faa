"""Storage-specific exceptions for S3/MinIO operations.

Two layers live here:

- Backend errors (``StoragePermissionError``, ``StorageTimeoutError``, ...)
  produced by ``map_boto_error`` when the S3 client reports a failure.
- The gateway taxonomy surfaced to callers:
    * ``InvalidRequestError``  - missing/empty input, rejected before any store call (400)
    * ``ObjectNotFoundError``  - object absent or delete-marked (404)
    * ``StorageOperationError`` - any other store failure, original message kept (500)

The gateway boundary folds every backend error into ``StorageOperationError``.

Example:
    ```python
    try:
        await client.put_object(Bucket=bucket, Key=key, Body=data)
    except ClientError as e:
        raise map_boto_error(e, operation="upload", key=key) from e
    ```
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from storage_gateway.core.exceptions import AppException

if TYPE_CHECKING:
    from botocore.exceptions import ClientError


class StorageError(AppException):
    """Base exception for all storage-related errors.

    Attributes:
        status_code: HTTP status code for the error.
        detail: Human-readable error message.
        code: Error code identifier for programmatic error handling.
        type: Error type identifier (used in RFC 7807 problem details).
        extra: Additional context-specific information about the error (metadata).

    Example:
        ```python
        raise StorageError(
            message="Failed to connect to storage backend",
            code="STORAGE_CONNECTION_ERROR",
            status_code=503,
            metadata={"endpoint": "http://127.0.0.1:9000"},
        )
        ```
    """

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 500,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Initialize storage error.

        Args:
            message: Human-readable error message.
            code: Error code for programmatic handling.
            status_code: HTTP status code (default: 500).
            metadata: Additional error context.
        """
        self.code = code
        self.message = message
        super().__init__(
            status_code=status_code,
            detail=message,
            type=code.lower().replace("_", "-"),
            extra=metadata or {},
        )


class StorageNotConfiguredError(StorageError):
    """Storage is disabled, not configured, or not started yet."""

    def __init__(
        self,
        message: str = "Storage is not configured or enabled",
        metadata: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code="STORAGE_NOT_CONFIGURED",
            status_code=503,
            metadata=metadata,
        )


class StorageFileNotFoundError(StorageError):
    """A key or bucket the store was asked about does not exist."""

    def __init__(
        self,
        message: str,
        metadata: dict[str, Any] | None = None,
        code: str = "STORAGE_NOT_FOUND",
    ) -> None:
        super().__init__(
            message=message,
            code=code,
            status_code=404,
            metadata=metadata,
        )


class StorageUploadError(StorageError):
    """Put of an object body failed for a non-S3 reason (stream, network)."""

    def __init__(
        self,
        message: str,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code="STORAGE_UPLOAD_ERROR",
            status_code=500,
            metadata=metadata,
        )


class StorageDownloadError(StorageError):
    """Reading an object body failed for a non-S3 reason (stream, network)."""

    def __init__(
        self,
        message: str,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code="STORAGE_DOWNLOAD_ERROR",
            status_code=500,
            metadata=metadata,
        )


class StoragePermissionError(StorageError):
    """The configured credentials lack permission for the operation."""

    def __init__(
        self,
        message: str,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code="STORAGE_PERMISSION_DENIED",
            status_code=403,
            metadata=metadata,
        )


class StorageQuotaExceededError(StorageError):
    """The store refused the operation because of a quota or limit."""

    def __init__(
        self,
        message: str,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code="STORAGE_QUOTA_EXCEEDED",
            status_code=507,
            metadata=metadata,
        )


class StorageValidationError(StorageError):
    """A request parameter was rejected as invalid."""

    def __init__(
        self,
        message: str,
        metadata: dict[str, Any] | None = None,
        code: str = "STORAGE_VALIDATION_ERROR",
    ) -> None:
        super().__init__(
            message=message,
            code=code,
            status_code=400,
            metadata=metadata,
        )


class StorageTimeoutError(StorageError):
    """The store did not answer within the configured timeout."""

    def __init__(
        self,
        message: str,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code="STORAGE_TIMEOUT",
            status_code=504,
            metadata=metadata,
        )


# ============================================================================
# Gateway taxonomy
# ============================================================================


class InvalidRequestError(StorageValidationError):
    """Caller input rejected before any store call.

    Raised for an absent or empty upload stream, an empty bucket name or key,
    and a negative teardown pack size.

    Example:
        ```python
        raise InvalidRequestError(
            "Upload stream is empty",
            metadata={"bucket": "academy-bucket", "key": "report.csv"},
        )
        ```
    """

    def __init__(
        self,
        message: str,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            metadata=metadata,
            code="STORAGE_INVALID_REQUEST",
        )


class ObjectNotFoundError(StorageFileNotFoundError):
    """The object does not exist, or its latest version is a delete marker."""

    def __init__(
        self,
        bucket: str,
        key: str,
        delete_marker: bool = False,
    ) -> None:
        self.bucket = bucket
        self.key = key
        self.delete_marker = delete_marker
        reason = "Object is deleted" if delete_marker else "Object not found"
        super().__init__(
            message=f"{reason}: {bucket}/{key}",
            metadata={"bucket": bucket, "key": key, "delete_marker": delete_marker},
            code="STORAGE_OBJECT_NOT_FOUND",
        )


class StorageOperationError(StorageError):
    """Any failure of the underlying store, reported with its original message.

    Example:
        ```python
        raise StorageOperationError(
            "Access Denied",
            metadata={"operation": "upload", "bucket": "b", "key": "k"},
        )
        ```
    """

    def __init__(
        self,
        message: str,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code="STORAGE_OPERATION_ERROR",
            status_code=500,
            metadata=metadata,
        )


#: Exceptions that cross the gateway boundary unchanged.
GATEWAY_ERRORS: tuple[type[StorageError], ...] = (
    InvalidRequestError,
    ObjectNotFoundError,
    StorageOperationError,
    StorageNotConfiguredError,
)


def get_error_code(error: ClientError) -> str:
    """Return the S3 error code of a botocore ClientError ("" when absent)."""
    response = getattr(error, "response", None) or {}
    return str(response.get("Error", {}).get("Code", ""))


def map_boto_error(
    error: ClientError,
    operation: str,
    key: str | None = None,
) -> StorageError:
    """Map botocore ClientError to a domain-specific StorageError.

    Args:
        error: The botocore ClientError exception to map.
        operation: The storage operation being performed (e.g., "upload").
        key: Optional object key or bucket name being operated on.

    Returns:
        StorageError: Appropriate domain-specific storage exception.

    Error Code Mappings:
        - NoSuchKey, NoSuchBucket -> StorageFileNotFoundError (404)
        - AccessDenied, ExpiredToken, InvalidAccessKeyId -> StoragePermissionError (403)
        - RequestTimeout, RequestTimeTooSkewed -> StorageTimeoutError (504)
        - QuotaExceeded, TooManyBuckets -> StorageQuotaExceededError (507)
        - InvalidRequest, InvalidArgument, MalformedXML -> StorageValidationError (400)
        - Others -> StorageError (500)
    """
    error_code = get_error_code(error) or "Unknown"
    error_message = error.response.get("Error", {}).get("Message", str(error))

    metadata: dict[str, Any] = {
        "operation": operation,
        "aws_error_code": error_code,
        "aws_error_message": error_message,
        "request_id": error.response.get("ResponseMetadata", {}).get("RequestId"),
    }
    if key:
        metadata["key"] = key
    if "BucketName" in error.response.get("Error", {}):
        metadata["bucket"] = error.response["Error"]["BucketName"]  # type: ignore[typeddict-item]

    message = f"{operation.capitalize()} failed: {error_message}"

    if error_code in {"NoSuchKey", "NoSuchBucket"}:
        return StorageFileNotFoundError(message=message, metadata=metadata)

    if error_code in {
        "AccessDenied",
        "ExpiredToken",
        "InvalidAccessKeyId",
        "SignatureDoesNotMatch",
        "InvalidToken",
    }:
        return StoragePermissionError(message=message, metadata=metadata)

    if error_code in {"RequestTimeout", "RequestTimeTooSkewed", "SlowDown"}:
        return StorageTimeoutError(
            message=f"{operation.capitalize()} timed out: {error_message}",
            metadata=metadata,
        )

    if error_code in {"QuotaExceeded", "TooManyBuckets", "AccountProblem"}:
        return StorageQuotaExceededError(message=message, metadata=metadata)

    if error_code in {
        "InvalidRequest",
        "InvalidArgument",
        "MalformedXML",
        "InvalidBucketName",
        "KeyTooLongError",
        "IncompleteBody",
    }:
        return StorageValidationError(message=message, metadata=metadata)

    return StorageError(
        message=message,
        code="STORAGE_ERROR",
        status_code=500,
        metadata=metadata,
    )
