"""Health check endpoints.

- ``/health`` - Service status with the object store check
- ``/health/live`` - Liveness probe
"""

from .router import router

__all__ = ["router"]
