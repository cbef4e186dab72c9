from functools import lru_cache

from sqlalchemy import Engine, create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Session

from app.core.config import get_settings

settings = get_settings()

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DATABASE_ECHO,
    pool_size=20,
    max_overflow=10,
)

async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


async def get_db() -> AsyncSession:
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@lru_cache
def get_sync_engine() -> Engine:
    """Engine shared by the worker processes, sized to the task concurrency."""
    return create_engine(
        settings.SYNC_DATABASE_URL,
        echo=settings.DATABASE_ECHO,
        pool_size=settings.SCREENING_CONCURRENCY,
        pool_pre_ping=True,
    )


def get_sync_session() -> Session:
    return Session(get_sync_engine(), expire_on_commit=False)


def dispose_sync_engine() -> None:
    if get_sync_engine.cache_info().currsize:
        get_sync_engine().dispose()
        get_sync_engine.cache_clear()
