"""
Blob storage for uploaded photo bytes.

Two interchangeable backends implement the same `BlobStore` protocol:
`LocalBlobStore` (a directory on disk) and `S3BlobStore` in `storage_s3.py`
(any S3-compatible bucket). The backend is picked once per process from
`STORAGE_PROVIDER`; everything else only talks to the protocol.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable
import logging

from .config import Settings, get_settings

logger = logging.getLogger("photoalbum.storage")

LOCAL_URL_PREFIX = "/uploads"


class StorageError(RuntimeError):
    """Raised when storage operations fail."""


@runtime_checkable
class BlobStore(Protocol):
    def put(self, key: str, data: bytes, content_type: Optional[str] = None) -> None: ...

    def get(self, key: str) -> bytes: ...

    def delete(self, key: str) -> None: ...

    def exists(self, key: str) -> bool: ...

    def location_for(self, key: str) -> str: ...

    def ensure_ready(self) -> None: ...


class LocalBlobStore:
    """Stores each blob as a flat file named after its key."""

    def __init__(self, root: Path) -> None:
        self._root = Path(root).resolve()

    @property
    def root(self) -> Path:
        return self._root

    def ensure_ready(self) -> None:
        self._root.mkdir(parents=True, exist_ok=True)

    def _path_for(self, key: str) -> Path:
        # Keys are generated names; anything that could walk out of the root is rejected.
        if not key or "/" in key or "\\" in key or key in {".", ".."}:
            raise StorageError(f"Invalid storage key: {key!r}")
        return self._root / key

    def put(self, key: str, data: bytes, content_type: Optional[str] = None) -> None:
        path = self._path_for(key)
        try:
            self.ensure_ready()
            with open(path, "wb") as fh:
                fh.write(data)
        except OSError as exc:
            raise StorageError(f"Failed to write {key}: {exc}") from exc
        logger.info("Stored photo locally: %s (%d bytes)", path, len(data))

    def get(self, key: str) -> bytes:
        path = self._path_for(key)
        try:
            return path.read_bytes()
        except OSError as exc:
            raise StorageError(f"Failed to read {key}: {exc}") from exc

    def delete(self, key: str) -> None:
        path = self._path_for(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(f"Failed to delete {key}: {exc}") from exc

    def exists(self, key: str) -> bool:
        return self._path_for(key).is_file()

    def location_for(self, key: str) -> str:
        return f"{LOCAL_URL_PREFIX}/{key}"


def build_blob_store(settings: Settings) -> BlobStore:
    """Instantiate the backend named by `settings.storage_provider`."""
    provider = settings.storage_provider
    if provider == "s3":
        from .storage_s3 import S3BlobStore

        return S3BlobStore(settings)
    if provider == "local":
        return LocalBlobStore(settings.upload_path)
    raise ValueError(f"Unknown STORAGE_PROVIDER {provider!r}; expected 'local' or 's3'")


@lru_cache()
def get_blob_store() -> BlobStore:
    store = build_blob_store(get_settings())
    logger.info("Storage initialized (provider=%s)", get_settings().storage_provider)
    return store


__all__ = [
    "BlobStore",
    "LocalBlobStore",
    "StorageError",
    "build_blob_store",
    "get_blob_store",
]
