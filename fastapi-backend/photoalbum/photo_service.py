"""
Upload workflow and gallery queries.

`PhotoService.upload` runs a fixed sequence of gates: type check, size check,
key generation, best-effort dimension probe, blob write, metadata insert.
Every step hands back its value together with an optional `UploadError`; the
first error ends the sequence. When the metadata insert fails after the blob
was written, the blob is deleted again before the error is returned, so a
record only becomes visible once both stores hold the photo.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import BinaryIO, Callable, List, Optional, Sequence, Tuple
import logging

from fastapi.concurrency import run_in_threadpool

from .config import Settings
from .errors import (
    PhotoNotFoundError,
    StorageReadError,
    UploadError,
    UploadErrorKind,
    UploadResult,
)
from .models import Photo, utc_now
from .photo_utils import (
    clean_original_name,
    generate_stored_key,
    is_allowed_mime_type,
    probe_dimensions,
)
from .repository import PhotoRepository
from .storage import BlobStore, StorageError

MSG_UNSUPPORTED_TYPE = "File type not supported. Please upload JPEG, PNG, GIF, or WebP images."
MSG_EMPTY_FILE = "File is empty."
MSG_STORAGE_WRITE_FAILED = "Error saving file. Please try again."
MSG_METADATA_WRITE_FAILED = "Error saving photo information. Please try again."


@dataclass(frozen=True)
class PhotoDetail:
    photo: Photo
    previous_photo_id: Optional[int]  # next-older photo
    next_photo_id: Optional[int]  # next-newer photo


def adjacent_ids(photos: Sequence[Photo], photo_id: int) -> Tuple[Optional[int], Optional[int]]:
    """
    Return (previous_id, next_id) for `photo_id` within a newest-first listing.

    Previous is the next-older photo, next is the next-newer one. Both are None
    when the id is not in the listing.
    """
    index = next((i for i, p in enumerate(photos) if p.id == photo_id), None)
    if index is None:
        return None, None
    previous_id = photos[index + 1].id if index + 1 < len(photos) else None
    next_id = photos[index - 1].id if index > 0 else None
    return previous_id, next_id


def _size_limit_label(settings: Settings) -> str:
    limit_bytes = settings.max_file_size_bytes
    if settings.max_file_size_mb and limit_bytes % (1024 * 1024) == 0:
        return f"{settings.max_file_size_mb}MB"
    return f"{limit_bytes} bytes"


class PhotoService:
    """Photo upload, retrieval and deletion over a blob store and the photos table."""

    def __init__(
        self,
        repository: PhotoRepository,
        blob_store: BlobStore,
        settings: Settings,
        logger: Optional[logging.Logger] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._repository = repository
        self._blob_store = blob_store
        self._settings = settings
        self._logger = logger or logging.getLogger("photoalbum.photo_service")
        self._clock = clock

    # ---------- upload ----------
    async def upload(
        self,
        file_name: str,
        declared_mime_type: str,
        size_bytes: int,
        stream: BinaryIO,
    ) -> UploadResult:
        original_name = clean_original_name(file_name)

        error = self._validate(original_name, declared_mime_type, size_bytes)
        if error:
            return UploadResult.failed(original_name, error)

        mime_type = declared_mime_type.lower()
        stored_key = generate_stored_key(original_name)
        data = await run_in_threadpool(stream.read)
        width, height = await run_in_threadpool(probe_dimensions, data)

        error = await self._write_blob(original_name, stored_key, data, mime_type)
        if error:
            return UploadResult.failed(original_name, error)

        photo, error = await self._insert_metadata(
            Photo(
                original_file_name=original_name,
                stored_key=stored_key,
                location_path=self._blob_store.location_for(stored_key),
                file_size_bytes=size_bytes,
                mime_type=mime_type,
                uploaded_at=self._clock(),
                width=width,
                height=height,
            )
        )
        if error:
            await self._discard_blob(stored_key)
            return UploadResult.failed(original_name, error)

        self._logger.info(
            "Successfully uploaded photo %s with ID %s", original_name, photo.id
        )
        return UploadResult.ok(original_name, photo)

    def _validate(
        self, file_name: str, declared_mime_type: str, size_bytes: int
    ) -> Optional[UploadError]:
        if not is_allowed_mime_type(declared_mime_type, self._settings.allowed_mime_types):
            self._logger.warning(
                "Upload rejected: Invalid file type %s for %s", declared_mime_type, file_name
            )
            return UploadError(UploadErrorKind.UNSUPPORTED_TYPE, MSG_UNSUPPORTED_TYPE)

        limit = self._settings.max_file_size_bytes
        if size_bytes > limit:
            self._logger.warning(
                "Upload rejected: File size %s exceeds limit for %s", size_bytes, file_name
            )
            return UploadError(
                UploadErrorKind.TOO_LARGE,
                f"File size exceeds {_size_limit_label(self._settings)} limit.",
            )

        if size_bytes <= 0:
            self._logger.warning("Upload rejected: %s is empty", file_name)
            return UploadError(UploadErrorKind.EMPTY_FILE, MSG_EMPTY_FILE)

        return None

    async def _write_blob(
        self, file_name: str, stored_key: str, data: bytes, mime_type: str
    ) -> Optional[UploadError]:
        try:
            await run_in_threadpool(self._blob_store.put, stored_key, data, mime_type)
        except StorageError:
            self._logger.exception("Error saving file %s as %s", file_name, stored_key)
            return UploadError(UploadErrorKind.STORAGE_WRITE_FAILED, MSG_STORAGE_WRITE_FAILED)
        return None

    async def _insert_metadata(
        self, photo: Photo
    ) -> Tuple[Optional[Photo], Optional[UploadError]]:
        try:
            saved = await self._repository.add(photo)
        except Exception:
            self._logger.exception(
                "Error saving photo metadata to database for %s", photo.original_file_name
            )
            return None, UploadError(
                UploadErrorKind.METADATA_WRITE_FAILED, MSG_METADATA_WRITE_FAILED
            )
        return saved, None

    async def _discard_blob(self, stored_key: str) -> None:
        try:
            await run_in_threadpool(self._blob_store.delete, stored_key)
        except StorageError:
            self._logger.exception("Error deleting blob %s during rollback", stored_key)

    # ---------- queries ----------
    async def list_all(self) -> List[Photo]:
        """All photos, newest first; ties keep insertion order."""
        return await self._repository.list_newest_first()

    async def get_by_id(self, photo_id: int) -> Optional[Photo]:
        return await self._repository.get(photo_id)

    async def get_detail(self, photo_id: int) -> Optional[PhotoDetail]:
        photos = await self.list_all()
        photo = next((p for p in photos if p.id == photo_id), None)
        if photo is None:
            return None
        previous_id, next_id = adjacent_ids(photos, photo_id)
        return PhotoDetail(photo=photo, previous_photo_id=previous_id, next_photo_id=next_id)

    async def read_photo(self, photo_id: int) -> Tuple[Photo, bytes]:
        photo = await self.get_by_id(photo_id)
        if photo is None:
            self._logger.warning("Photo with ID %s not found", photo_id)
            raise PhotoNotFoundError(photo_id)

        try:
            data = await run_in_threadpool(self._blob_store.get, photo.stored_key)
        except StorageError as exc:
            self._logger.error(
                "Physical file not found for photo ID %s at %s: %s",
                photo_id,
                photo.location_path,
                exc,
            )
            raise StorageReadError(photo_id, photo.stored_key) from exc

        self._logger.debug(
            "Serving photo ID %s (%s, %d bytes)", photo_id, photo.original_file_name, len(data)
        )
        return photo, data

    async def delete(self, photo_id: int) -> bool:
        """
        Remove the blob (best-effort) and then the row.

        Returns False when no such photo exists; nothing is touched in that case.
        """
        photo = await self._repository.get(photo_id)
        if photo is None:
            self._logger.warning("Photo with ID %s not found for deletion", photo_id)
            return False

        try:
            if await run_in_threadpool(self._blob_store.exists, photo.stored_key):
                await run_in_threadpool(self._blob_store.delete, photo.stored_key)
            else:
                self._logger.warning(
                    "Blob %s for photo ID %s was already missing", photo.stored_key, photo_id
                )
        except StorageError:
            self._logger.exception(
                "Error deleting blob %s for photo ID %s", photo.stored_key, photo_id
            )

        await self._repository.delete(photo)
        self._logger.info("Successfully deleted photo ID %s", photo_id)
        return True


__all__ = ["PhotoService", "PhotoDetail", "adjacent_ids"]
