import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import apexcare.models  # noqa: F401  регистрируем таблицы в metadata
from apexcare.database import Base
from apexcare.services.promotion_service import PromotionService


@pytest.fixture
async def session_factory(tmp_path):
    """Отдельная SQLite-база на каждый тест; каждая сессия - своё соединение."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'promotions.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def promotion_service(session_factory):
    return PromotionService(session_factory=session_factory, cache=None)
