"""SQLAlchemy Unit of Work implementation."""

from typing import Any, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from infrastructure.database.repositories.sqlalchemy_profile_repo import (
    SQLAlchemyProfileRepository,
)

logger = structlog.get_logger()


class SQLAlchemyUnitOfWork:
    """One session, one transaction. Rolls back if the block raises."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._session: Optional[AsyncSession] = None
        self._profiles: Optional[SQLAlchemyProfileRepository] = None

    @property
    def profiles(self) -> SQLAlchemyProfileRepository:
        if self._profiles is None:
            raise RuntimeError("UnitOfWork not initialized. Use as context manager.")
        return self._profiles

    async def commit(self) -> None:
        if self._session:
            await self._session.commit()

    async def rollback(self) -> None:
        if self._session:
            await self._session.rollback()

    async def __aenter__(self) -> "SQLAlchemyUnitOfWork":
        self._session = self._session_factory()
        self._profiles = SQLAlchemyProfileRepository(self._session)
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Any,
    ) -> None:
        if self._session is None:
            return
        try:
            if exc_type:
                logger.debug("unit_of_work_rolled_back", error_type=exc_type.__name__)
                await self.rollback()
        finally:
            await self._session.close()
            self._session = None
            self._profiles = None
