import io
import logging
from dataclasses import replace
from pathlib import Path
from typing import Callable

import pytest
import pytest_asyncio
from PIL import Image
from sqlmodel import SQLModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from photoalbum import models  # noqa: F401  (registers the photos table)
from photoalbum.config import Settings, get_settings
from photoalbum.database import build_session_factory
from photoalbum.photo_service import PhotoService
from photoalbum.repository import PhotoRepository
from photoalbum.storage import LocalBlobStore


def make_image_bytes(width: int = 40, height: int = 30, fmt: str = "PNG") -> bytes:
    """Create a small solid-colour image in memory."""
    img = Image.new("RGB", (width, height), color="red")
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def make_image() -> Callable[..., bytes]:
    return make_image_bytes


@pytest.fixture
def upload_dir(tmp_path: Path) -> Path:
    return tmp_path / "uploads"


@pytest.fixture
def settings(upload_dir: Path) -> Settings:
    get_settings.cache_clear()
    return replace(get_settings(), upload_path=upload_dir)


@pytest.fixture
def blob_store(upload_dir: Path) -> LocalBlobStore:
    return LocalBlobStore(upload_dir)


@pytest_asyncio.fixture
async def db_engine(tmp_path: Path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'photos.db'}", poolclass=NullPool
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session(db_engine):
    async with build_session_factory(db_engine)() as session:
        yield session


@pytest.fixture
def fail_commits_after(monkeypatch):
    """
    Let the first `successes` commits on a session go through, then fail.

    Failing commits flush first, so the repository's rollback runs against an
    open transaction just like a real constraint or lock error would.
    """

    def _patch(session, successes: int = 0) -> None:
        real_commit = session.commit
        calls = {"count": 0}

        async def _commit():
            calls["count"] += 1
            if calls["count"] > successes:
                await session.flush()
                raise SQLAlchemyError("database is locked")
            await real_commit()

        monkeypatch.setattr(session, "commit", _commit)

    return _patch


@pytest.fixture
def service_logger() -> logging.Logger:
    return logging.getLogger("photoalbum.tests")


@pytest.fixture
def make_service(session, blob_store, settings, service_logger) -> Callable[..., PhotoService]:
    """Factory so individual tests can swap the store, settings, logger or clock."""

    def _create(**overrides) -> PhotoService:
        kwargs = {
            "repository": PhotoRepository(session),
            "blob_store": blob_store,
            "settings": settings,
            "logger": service_logger,
        }
        kwargs.update(overrides)
        return PhotoService(**kwargs)

    return _create


@pytest.fixture
def service(make_service) -> PhotoService:
    return make_service()
