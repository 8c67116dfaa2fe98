from typing import AsyncGenerator, Optional
from sqlmodel import SQLModel
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool, StaticPool

from .config import get_settings

# Importing the models registers their tables on SQLModel.metadata
from . import models  # noqa: F401


def normalize_database_url(url: str) -> str:
    """Force the async driver for postgres URLs."""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("postgresql+psycopg2://"):
        return url.replace("postgresql+psycopg2://", "postgresql+asyncpg://", 1)
    if url.startswith("sqlite:///"):
        return url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    return url


def make_engine(url: Optional[str] = None) -> AsyncEngine:
    database_url = normalize_database_url(url or get_settings().database_url)
    engine_kwargs = {"echo": False, "future": True}
    if database_url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        if (
            ":memory:" in database_url
            or "mode=memory" in database_url
            or database_url == "sqlite+aiosqlite://"
        ):
            # In-memory DBs must share a single connection or the schema vanishes
            engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs["poolclass"] = NullPool
    elif "asyncpg" in database_url:
        engine_kwargs["poolclass"] = NullPool
    return create_async_engine(database_url, **engine_kwargs)


def make_session_factory(bind: AsyncEngine) -> sessionmaker:
    return sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = make_engine()

# Create session factory at module level for proper initialization
async_session_factory = make_session_factory(engine)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        yield session


async def create_tables(bind: AsyncEngine) -> None:
    async with bind.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def init_db(bind: Optional[AsyncEngine] = None) -> None:
    # Postgres schemas are owned by Alembic (`alembic upgrade head`); running
    # create_all there would race the migration history.
    target = bind or engine
    if "postgres" in target.dialect.name:
        return
    await create_tables(target)
