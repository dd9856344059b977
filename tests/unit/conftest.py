"""Shared fixtures for unit tests."""

from types import TracebackType
from unittest.mock import AsyncMock
from uuid import UUID, uuid4

import pytest


class FakeUnitOfWork:
    """Stands in for SQLAlchemyUnitOfWork; ``profiles`` is an AsyncMock.

    Every ``async with`` block counts as one transaction. Leaving a block on an
    exception rolls back the way the real unit of work does.
    """

    def __init__(self) -> None:
        self.profiles = AsyncMock()
        self.transactions = 0
        self.committed = False
        self.rolled_back = False

    async def commit(self) -> None:
        self.committed = True

    async def rollback(self) -> None:
        self.rolled_back = True

    async def __aenter__(self) -> "FakeUnitOfWork":
        self.transactions += 1
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if exc_type is not None:
            await self.rollback()


@pytest.fixture
def uow() -> FakeUnitOfWork:
    return FakeUnitOfWork()


@pytest.fixture
def user_id() -> UUID:
    """ID of the member being registered."""
    return uuid4()


@pytest.fixture
def referrer_id() -> UUID:
    """ID of the member who owns the referral code."""
    return uuid4()
