"""Pydantic schemas for the object storage API."""

from datetime import datetime

from pydantic import BaseModel, Field

# ============================================================================
# Bucket Schemas
# ============================================================================


class BucketResponse(BaseModel):
    """Response schema for one bucket."""

    name: str = Field(..., description="Bucket name")
    creation_date: datetime | None = Field(None, description="When bucket was created")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "name": "academy-bucket",
                    "creation_date": "2024-01-15T10:30:00Z",
                }
            ]
        }
    }


class BucketListResponse(BaseModel):
    """Response schema for listing buckets."""

    buckets: list[BucketResponse] = Field(..., description="List of buckets")
    total: int = Field(..., description="Total number of buckets")


# ============================================================================
# Object Schemas
# ============================================================================


class ObjectKeyResponse(BaseModel):
    """Response schema for a stored object."""

    bucket: str = Field(..., description="Bucket name")
    key: str = Field(..., description="Object key")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "bucket": "academy-bucket",
                    "key": "uploaded-file-7f1c2a7e-3c1b-4a8e-9b57-0f2d1c3e4a5b",
                }
            ]
        }
    }


class ObjectKeyListResponse(BaseModel):
    """Response schema for listing the keys of a bucket."""

    bucket: str = Field(..., description="Bucket name")
    keys: list[str] = Field(..., description="Object keys in listing order")
    total: int = Field(..., description="Number of keys")


class PresignedUrlResponse(BaseModel):
    """Response schema for a presigned download URL."""

    bucket: str = Field(..., description="Bucket name")
    key: str = Field(..., description="Object key")
    url: str = Field(..., description="Presigned GET URL")
    expires_in_seconds: int = Field(..., description="URL lifetime in seconds")
    expires_at: datetime = Field(..., description="When the URL stops working (UTC)")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "bucket": "academy-bucket",
                    "key": "reports/2024.csv",
                    "url": "http://127.0.0.1:9000/academy-bucket/reports/2024.csv?X-Amz-Signature=...",
                    "expires_in_seconds": 86400,
                    "expires_at": "2024-01-16T10:30:00Z",
                }
            ]
        }
    }
