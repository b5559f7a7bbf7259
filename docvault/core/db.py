from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from docvault.core.config import Settings

# Базовый класс для моделей
Base = declarative_base()


def create_engine(settings: Settings) -> AsyncEngine:
    """Асинхронный движок"""
    return create_async_engine(settings.database_url, future=True)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """Фабрика сессий, по одной сессии на операцию репозитория"""
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


async def create_schema(engine: AsyncEngine) -> None:
    """Создание таблиц для всех моделей"""
    # импорт регистрирует модели в метаданных
    import docvault.db.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
