"""
Blob storage for generated illustrations and narration audio.
"""

from __future__ import annotations

import logging
import os
import secrets
import time
from pathlib import Path
from typing import Protocol

from doodletales.ai_generation.media import extension_for, to_data_url
from doodletales.common import StorageError

logger = logging.getLogger(__name__)


class BlobStore(Protocol):
    def put(self, data: bytes, mime_type: str, folder: str) -> str:
        """Persist ``data`` and return a durable URL for it."""
        ...


class LocalBlobStore:
    """
    Writes blobs under a local directory, optionally served from ``base_url``.

    Parameters
    ----------
    root:
        Directory to write into. Falls back to ``DOODLETALES_STORAGE_DIR``.
    base_url:
        Public URL prefix that maps onto ``root``. Falls back to
        ``DOODLETALES_STORAGE_BASE_URL``; when unset, ``file://`` URIs are returned.
    """

    def __init__(self, root: str | Path | None = None, base_url: str | None = None) -> None:
        resolved_root = root or os.getenv("DOODLETALES_STORAGE_DIR")
        if not resolved_root:
            raise ValueError("Storage root is required. Set DOODLETALES_STORAGE_DIR or pass root.")
        self._root = Path(resolved_root).expanduser().resolve()
        resolved_base = base_url or os.getenv("DOODLETALES_STORAGE_BASE_URL")
        self._base_url = resolved_base.rstrip("/") if resolved_base else None

    @property
    def root(self) -> Path:
        return self._root

    def put(self, data: bytes, mime_type: str, folder: str) -> str:
        if not data:
            raise StorageError("Refusing to store an empty blob.")

        folder_parts = [part for part in folder.replace("\\", "/").split("/") if part]
        if any(part in {".", ".."} for part in folder_parts):
            raise StorageError(f"Invalid storage folder: {folder!r}")

        filename = f"{int(time.time() * 1000)}-{secrets.token_hex(6)}.{extension_for(mime_type)}"
        key = "/".join([*folder_parts, filename])
        target = self._root.joinpath(*folder_parts, filename)

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            raise StorageError(f"Failed to write blob to {target}: {exc}") from exc

        logger.debug("Stored %d bytes at %s", len(data), target)
        if self._base_url:
            return f"{self._base_url}/{key}"
        return target.as_uri()


def store_or_inline(
    store: BlobStore | None,
    data: bytes,
    mime_type: str,
    folder: str,
) -> str:
    """
    Upload ``data`` and return its URL, or a ``data:`` URL when there is no store or it fails.
    """
    if store is not None:
        try:
            return store.put(data, mime_type, folder)
        except Exception as exc:
            logger.warning("Blob upload to '%s' failed, inlining instead: %s", folder, exc)
    return to_data_url(data, mime_type)
