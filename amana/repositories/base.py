"""Shared plumbing for repositories backed by an async session factory."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = logging.getLogger(__name__)


class RepositoryError(Exception):
    """A storage read or write failed."""

    def __init__(self, operation: str, cause: Exception):
        self.operation = operation
        self.cause = cause
        super().__init__(f"{operation} failed: {cause}")


class BaseRepository:
    """Opens one short-lived session per operation.

    Sessions are never shared between operations, so callers may fan
    reads out concurrently with asyncio.gather.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        name = f"{type(self).__name__}.{operation}"
        async with self._session_factory() as session:
            try:
                yield session
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"{name} failed: {e}")
                raise RepositoryError(name, e) from e
