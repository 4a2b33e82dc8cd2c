"""Declarative base, async engine and session setup."""
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

import config


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def make_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Sessions keep loaded state after commit; bracket services flush explicitly."""
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False, autoflush=False)


engine = create_async_engine(config.DATABASE_URL, echo=False)
async_session_factory = make_session_factory(engine)


async def get_async_session() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency: one session per request. Routes commit or roll back."""
    async with async_session_factory() as session:
        yield session


async def create_tables(bind: AsyncEngine) -> None:
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_db() -> None:
    """Create all tables on the configured database."""
    await create_tables(engine)
