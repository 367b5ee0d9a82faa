"""Object storage gateway endpoints.

Exposes bucket listing, object upload/download/delete, presigned download
URLs and batched bucket teardown under ``/s3``.
"""

from .router import router

__all__ = ["router"]
