"""
Transaction boundary shared by the services.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..utils.exceptions import ConcurrencyError, UnexpectedError, VanpoolError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def transaction(session: AsyncSession, operation: str) -> AsyncIterator[AsyncSession]:
    """
    Run one service operation as a single unit of work.

    Commits when the block exits cleanly and rolls back on any error, so a
    failed operation never leaves partial writes behind. Store errors are
    translated here: constraint violations become a retryable
    ``ConcurrencyError`` and everything else an ``UnexpectedError`` carrying
    the driver's message.

    Usage:
        async with transaction(self.session, "join"):
            ...
    """
    try:
        yield session
        await session.commit()
    except VanpoolError:
        await session.rollback()
        raise
    except IntegrityError as e:
        await session.rollback()
        logger.warning(f"Constraint violation during {operation}: {e.orig}")
        raise ConcurrencyError(
            f"A concurrent change conflicted with {operation}",
            details={"operation": operation},
        ) from e
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(f"Store error during {operation}: {e}")
        raise UnexpectedError(str(e), details={"operation": operation}) from e
    except Exception:
        await session.rollback()
        raise
