from typing import AsyncGenerator

from sqlmodel import SQLModel
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool, StaticPool

from .config import get_settings


def build_engine(database_url: str) -> AsyncEngine:
    engine_kwargs = {"echo": False, "future": True}
    if database_url.startswith("sqlite"):
        # Allow connections to be used across threads (useful for uvicorn worker threads)
        engine_kwargs["connect_args"] = {"check_same_thread": False}

        if (
            ":memory:" in database_url
            or "mode=memory" in database_url
            or database_url == "sqlite+aiosqlite://"
        ):
            # In-memory DBs need a single shared connection or the schema vanishes
            # when the first connection closes.
            engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs["poolclass"] = NullPool
    elif "asyncpg" in database_url:
        # QueuePool can deadlock under uvicorn's event loop handling in some edge cases.
        engine_kwargs["poolclass"] = NullPool

    return create_async_engine(database_url, **engine_kwargs)


def build_session_factory(bind: AsyncEngine) -> sessionmaker:
    return sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = build_engine(get_settings().database_url)

async_session_factory = build_session_factory(engine)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        yield session


async def init_db(bind: AsyncEngine = engine) -> None:
    # Schema migrations are out of scope; create the photos table directly.
    from . import models  # noqa: F401  (registers tables on SQLModel.metadata)

    async with bind.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
