"""Shared helpers for contest services."""
import functools
import logging

from sqlalchemy.exc import SQLAlchemyError

from costume_contest.utils.exceptions import ContestError, OperationResult

logger = logging.getLogger(__name__)


def guarded_operation(operation: str):
    """Turn a service coroutine into one that always returns an ``OperationResult``.

    Contest rule failures become their specific result; anything else is
    rolled back, logged under the operation name and reported as a generic
    infrastructure failure. The wrapped method must belong to an object with a
    ``db`` session.
    """
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(self, *args, **kwargs):
            try:
                return await func(self, *args, **kwargs)
            except ContestError as e:
                await self.db.rollback()
                log = logger.error if e.kind == "infrastructure" else logger.info
                log(f"[{operation}] rejected: {e.code} ({e.message})")
                return OperationResult.failure(e)
            except SQLAlchemyError as e:
                await self.db.rollback()
                logger.error(f"[{operation}] database error: {e}", exc_info=True)
                return OperationResult.unexpected()
            except Exception as e:
                await self.db.rollback()
                logger.error(f"[{operation}] unexpected error: {e}", exc_info=True)
                return OperationResult.unexpected()
        return wrapper
    return decorator
