"""Metadata store for photo records."""

from __future__ import annotations

from typing import List, Optional

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from .models import Photo


class PhotoRepository:
    """Single-row create/read/delete plus the newest-first listing over `photos`."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, photo: Photo) -> Photo:
        self._session.add(photo)
        try:
            await self._session.commit()
        except Exception:
            await self._session.rollback()
            raise
        # Detached so a later rollback on this session cannot expire it.
        self._session.expunge(photo)
        return photo

    async def get(self, photo_id: int) -> Optional[Photo]:
        return await self._session.get(Photo, photo_id)

    async def list_newest_first(self) -> List[Photo]:
        statement = select(Photo).order_by(Photo.uploaded_at.desc(), Photo.id.asc())
        result = await self._session.exec(statement)
        return list(result.all())

    async def delete(self, photo: Photo) -> None:
        await self._session.delete(photo)
        await self._session.commit()


__all__ = ["PhotoRepository"]
