"""Single-object transfers: upload from a stream, download into memory."""

from __future__ import annotations

import logging
from io import BytesIO
from typing import TYPE_CHECKING

from storage_gateway.infra.storage.exceptions import (
    ObjectNotFoundError,
    StorageFileNotFoundError,
)
from storage_gateway.infra.storage.models import DEFAULT_CONTENT_TYPE, DownloadResult

if TYPE_CHECKING:
    from storage_gateway.infra.storage.backends.protocol import StorageBackend, UploadResult
    from storage_gateway.infra.storage.models import ObjectRef, TransferRequest

logger = logging.getLogger(__name__)


class TransferExecutor:
    """Moves object bodies between caller streams and the store."""

    def __init__(self, backend: StorageBackend) -> None:
        self._backend = backend

    async def upload(self, request: TransferRequest) -> UploadResult:
        """Put the request payload, replacing any existing object.

        The payload stream is closed when the call returns or raises.
        """
        ref = request.ref
        with request.payload as payload:
            return await self._backend.put_object(
                ref.bucket.name,
                ref.key,
                payload,
                request.length,
                request.content_type,
            )

    async def download(self, ref: ObjectRef) -> DownloadResult:
        """Stat the object, then read its whole body into one buffer.

        Raises:
            ObjectNotFoundError: If the object is absent or delete-marked
        """
        stat = await self._backend.stat_object(ref.bucket.name, ref.key)
        if stat is None or stat.delete_marker:
            raise ObjectNotFoundError(
                ref.bucket.name,
                ref.key,
                delete_marker=stat is not None and stat.delete_marker,
            )

        buffer = BytesIO()

        async def sink(chunk: bytes) -> None:
            buffer.write(chunk)

        try:
            await self._backend.get_object(ref.bucket.name, ref.key, sink)
        except StorageFileNotFoundError as e:
            # Removed between stat and get
            logger.info("Object vanished before download", extra={"ref": str(ref)})
            raise ObjectNotFoundError(ref.bucket.name, ref.key) from e

        return DownloadResult(
            ref=ref,
            data=buffer.getvalue(),
            content_type=stat.content_type or DEFAULT_CONTENT_TYPE,
        )
