from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from wealthboard.core.config import settings

def _pool_options(url: str) -> dict:
    # У SQLite (тесты, локальный запуск) нет QueuePool.
    if url.startswith("sqlite"):
        return {}
    return {
        "pool_size": settings.DB.DB_POOL_SIZE,
        "max_overflow": settings.DB.DB_MAX_OVERFLOW,
        "pool_pre_ping": True,
        "pool_recycle": 3600,
    }

def get_db_engine(url: str | None = None, **overrides) -> AsyncEngine:
    """Создает engine по DB__DB_URL или по явно переданному url."""
    url = url or settings.DB.DB_URL
    options = {**_pool_options(url), **overrides}
    return create_async_engine(url, echo=False, **options)

def get_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
