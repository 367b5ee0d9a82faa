"""RFC 7807 Problem Details schema for error responses."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ProblemDetails(BaseModel):
    """RFC 7807 Problem Details for HTTP APIs.

    See: https://datatracker.ietf.org/doc/html/rfc7807

    Example:
        return JSONResponse(
            status_code=404,
            content=ProblemDetails(
                type="storage-object-not-found",
                title="Not Found",
                status=404,
                detail="Object not found: reports/2024.csv",
                instance="/api/v1/s3/file/reports/2024.csv",
            ).model_dump(exclude_none=True),
        )
    """

    type: str = Field(
        default="about:blank",
        min_length=1,
        max_length=200,
        description="URI reference identifying the problem type",
    )
    title: str = Field(
        min_length=1, max_length=200, description="Short, human-readable summary of the problem"
    )
    status: int = Field(ge=100, le=599, description="HTTP status code")
    detail: str | None = Field(
        default=None,
        max_length=2000,
        description="Human-readable explanation specific to this occurrence",
    )
    instance: str | None = Field(
        default=None,
        max_length=500,
        description="URI reference identifying the specific occurrence",
    )
    request_id: str | None = Field(
        default=None,
        description="Request identifier for log correlation",
    )
    extra: dict[str, Any] | None = Field(
        default=None,
        description="Additional context about the error",
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "type": "storage-object-not-found",
                "title": "Not Found",
                "status": 404,
                "detail": "Object not found: reports/2024.csv",
                "instance": "/api/v1/s3/file/reports/2024.csv",
            }
        },
        str_strip_whitespace=True,
    )
