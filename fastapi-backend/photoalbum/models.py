from typing import Optional
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """SQLite hands timestamps back without tzinfo; they are always stored as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Photo(SQLModel, table=True):
    """One stored image and the metadata needed to list, serve and delete it."""

    __tablename__ = "photos"

    id: Optional[int] = Field(default=None, primary_key=True)

    # Name as supplied by the uploader; not unique.
    original_file_name: str = Field(max_length=255)

    # Generated blob name (uuid + original extension), also the storage key.
    stored_key: str = Field(max_length=255, sa_column_kwargs={"unique": True})

    # Where the blob lives in its backend, e.g. "/uploads/<key>" or "s3://bucket/<key>".
    location_path: str = Field(max_length=500)

    file_size_bytes: int = Field(gt=0)
    mime_type: str = Field(max_length=50)

    # Sole sort key for the gallery (newest first).
    uploaded_at: datetime = Field(default_factory=utc_now, index=True)

    # Best-effort; left empty when the image could not be decoded.
    width: Optional[int] = None
    height: Optional[int] = None

    @property
    def etag(self) -> str:
        uploaded = as_utc(self.uploaded_at)
        micros = int(uploaded.timestamp()) * 1_000_000 + uploaded.microsecond
        return f'"{self.id}-{micros}"'
