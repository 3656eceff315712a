"""
Explicit transaction handling for store operations.

Every store method runs its statements inside one DBTransaction, so
the whole method is a single unit (reads included, so a failing query
never escapes as a raw driver error):

    async with DBTransaction(db):
        db.add(user)
        await db.flush()
        ...
    # committed here, or rolled back if anything above raised

Typed account errors (DuplicateError, RoleError, ...) propagate unchanged
after the rollback. Any other SQLAlchemy failure is rolled back and
re-raised as StorageError, with the driver exception chained as
__cause__ for the logs.
"""

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from drivelink.core.errors import StorageError
from drivelink.core.logging import get_logger

logger = get_logger(__name__)


class DBTransaction:
    """
    Context manager for an all-or-nothing unit of work.

    The session begins its transaction lazily on the first statement
    (SQLAlchemy autobegin), so this works on a fresh session and on one
    that has already run reads.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def __aenter__(self) -> AsyncSession:
        return self.session

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        if exc_type is None:
            try:
                await self.session.commit()
            except SQLAlchemyError as exc:
                await self.session.rollback()
                logger.error("transaction_commit_failed", error_type=type(exc).__name__)
                raise StorageError() from exc
            return False

        await self.session.rollback()

        if isinstance(exc_val, SQLAlchemyError):
            logger.error(
                "transaction_failed",
                error=str(exc_val),
                error_type=exc_type.__name__,
            )
            raise StorageError() from exc_val

        return False


# ================================
# Integrity Error Classification
# ================================

def is_unique_violation(exc: IntegrityError, name: str, *columns: str) -> bool:
    """
    True if ``exc`` reports a violation of the named UNIQUE constraint or index.

    PostgreSQL puts the constraint name in the message; SQLite lists the
    constrained columns instead ("UNIQUE constraint failed: users.email").

    Example:
        is_unique_violation(exc, "ix_users_email", "users.email")
    """
    message = str(exc.orig)
    if name in message:
        return True
    return f"UNIQUE constraint failed: {', '.join(columns)}" in message


def is_foreign_key_violation(exc: IntegrityError) -> bool:
    """True if ``exc`` reports a foreign key violation (a referenced row is gone)."""
    return "foreign key constraint" in str(exc.orig).lower()


__all__ = ["DBTransaction", "is_foreign_key_violation", "is_unique_violation"]
