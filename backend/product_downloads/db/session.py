"""SQLite session and engine for the persistent shop session backend."""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from product_downloads.config import get_settings

Base = declarative_base()


def make_engine(db_path: Path) -> AsyncEngine:
    """SQLAlchemy async needs sqlite+aiosqlite and path as URL."""
    return create_async_engine(f"sqlite+aiosqlite:///{db_path}", echo=False)


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


_engine: Optional[AsyncEngine] = None
_async_session: Optional[async_sessionmaker] = None


def _default_factory() -> async_sessionmaker:
    global _engine, _async_session
    if _async_session is None:
        _engine = make_engine(get_settings().db_path)
        _async_session = make_session_factory(_engine)
    return _async_session


async def init_db(engine: Optional[AsyncEngine] = None) -> None:
    """Create tables if they do not exist."""
    from product_downloads.auth import models  # noqa: F401 - register with Base

    if engine is None:
        _default_factory()
        engine = _engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@asynccontextmanager
async def get_session(
    factory: Optional[async_sessionmaker] = None,
) -> AsyncGenerator[AsyncSession, None]:
    """Yield an async session that commits on success and rolls back on error."""
    factory = factory or _default_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
