"""Upload outcomes and the error taxonomy shared by the service and HTTP layers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .models import Photo


class UploadErrorKind(str, Enum):
    UNSUPPORTED_TYPE = "UNSUPPORTED_TYPE"
    TOO_LARGE = "TOO_LARGE"
    EMPTY_FILE = "EMPTY_FILE"
    STORAGE_WRITE_FAILED = "STORAGE_WRITE_FAILED"
    METADATA_WRITE_FAILED = "METADATA_WRITE_FAILED"


@dataclass(frozen=True)
class UploadError:
    kind: UploadErrorKind
    message: str


@dataclass
class UploadResult:
    """
    Outcome of uploading a single file.

    Exactly one of `photo` and `error` is set.
    """

    file_name: str
    photo: Optional[Photo] = None
    error: Optional[UploadError] = None

    @property
    def success(self) -> bool:
        return self.photo is not None and self.error is None

    @classmethod
    def ok(cls, file_name: str, photo: Photo) -> "UploadResult":
        return cls(file_name=file_name, photo=photo)

    @classmethod
    def failed(cls, file_name: str, error: UploadError) -> "UploadResult":
        return cls(file_name=file_name, error=error)


class PhotoNotFoundError(LookupError):
    """Raised when no photo record exists for the requested id."""

    def __init__(self, photo_id: int) -> None:
        self.photo_id = photo_id
        super().__init__(f"Photo {photo_id} not found")


class StorageReadError(RuntimeError):
    """Raised when a photo record exists but its blob is missing or unreadable."""

    def __init__(self, photo_id: int, stored_key: str) -> None:
        self.photo_id = photo_id
        self.stored_key = stored_key
        super().__init__(f"Blob {stored_key} for photo {photo_id} could not be read")


__all__ = [
    "UploadErrorKind",
    "UploadError",
    "UploadResult",
    "PhotoNotFoundError",
    "StorageReadError",
]
