from typing import Self

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from wealthboard.infrastructure.db.repositories import FinanceRepository

class UnitOfWork:
    """
    Одна транзакция на блок `async with`: commit при успехе, rollback при исключении.
    Экземпляр можно переиспользовать, каждый вход открывает новую сессию.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory
        self._session: AsyncSession | None = None
        self._finance: FinanceRepository | None = None

    async def __aenter__(self) -> Self:
        self._session = self.session_factory()
        self._finance = FinanceRepository(self._session)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        session = self._session
        if session is None:
            return
        try:
            if exc_type is None:
                await session.commit()
            else:
                await session.rollback()
        finally:
            await session.close()
            self._session = None
            self._finance = None

    @property
    def finance(self) -> FinanceRepository:
        if self._finance is None:
            raise RuntimeError("UnitOfWork is not active")
        return self._finance
