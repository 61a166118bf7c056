"""Common FastAPI dependencies."""

from fastapi import Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from .config import Settings, get_settings
from .database import get_session
from .photo_service import PhotoService
from .repository import PhotoRepository
from .storage import BlobStore, get_blob_store


def get_photo_service(
    session: AsyncSession = Depends(get_session),
    blob_store: BlobStore = Depends(get_blob_store),
    settings: Settings = Depends(get_settings),
) -> PhotoService:
    """One service per request, bound to that request's database session."""
    return PhotoService(PhotoRepository(session), blob_store, settings)


__all__ = ["get_photo_service"]
