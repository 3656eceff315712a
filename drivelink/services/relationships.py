"""
Relationship Graph Store

Owns ``user_relationships``: directed edges from a car owner to a relative.

Rules enforced on insert (inside one transaction):
- both ends exist                          → NotFoundError
- owner is a car_owner, relative a relative → RoleError
- the (owner, relative) pair is new        → DuplicateError

Edges disappear with either endpoint (ON DELETE CASCADE). Reads also run
inside a DBTransaction so storage failures surface as StorageError.
"""

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from drivelink.core.errors import DuplicateError, NotFoundError, RoleError
from drivelink.core.logging import get_logger
from drivelink.db.transaction import DBTransaction, is_foreign_key_violation, is_unique_violation
from drivelink.models.user import User, UserRelationship, UserRole
from drivelink.schemas.user import OwnerSummary, RelationshipRecord, RelativeSummary
from drivelink.services.accounts import load_user

logger = get_logger(__name__)

EDGE_EXISTS = "Relationship already exists"
EDGE_UNIQUE = "uq_user_relationships_owner_id_relative_id"


class RelationshipStore:
    """Persistence and traversal of owner → relative edges."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def add_edge(self, owner_id: int, relative_id: int) -> RelationshipRecord:
        """
        Link a relative to a car owner.

        Role checks and the insert share one transaction, so an edge is never
        written for a pair that failed the checks.
        """
        async with DBTransaction(self.db):
            owner = await load_user(self.db, owner_id)
            relative = await load_user(self.db, relative_id)

            if owner.role != UserRole.CAR_OWNER:
                raise RoleError("User must be a car owner to add relatives")
            if relative.role != UserRole.RELATIVE:
                raise RoleError("Cannot add a car owner as a relative")

            if await self._find_edge(owner_id, relative_id) is not None:
                raise DuplicateError(EDGE_EXISTS)

            edge = UserRelationship(owner_id=owner_id, relative_id=relative_id)
            self.db.add(edge)
            try:
                await self.db.flush()
            except IntegrityError as exc:
                if is_unique_violation(
                    exc, EDGE_UNIQUE, "user_relationships.owner_id", "user_relationships.relative_id"
                ):
                    raise DuplicateError(EDGE_EXISTS) from exc
                if is_foreign_key_violation(exc):
                    # An endpoint was deleted after the checks above
                    raise NotFoundError("User no longer exists") from exc
                raise

        logger.info("relative_added", owner_id=owner_id, relative_id=relative_id)
        return RelationshipRecord.model_validate(edge)

    async def remove_edge(self, owner_id: int, relative_id: int) -> bool:
        """
        Remove exactly one edge.

        Raises:
            NotFoundError: no such edge (zero rows deleted is an error)
        """
        async with DBTransaction(self.db):
            result = await self.db.execute(
                delete(UserRelationship).where(
                    UserRelationship.owner_id == owner_id,
                    UserRelationship.relative_id == relative_id,
                )
            )
            if result.rowcount == 0:
                raise NotFoundError("Relationship does not exist")

        logger.info("relative_removed", owner_id=owner_id, relative_id=relative_id)
        return True

    async def relatives_of(self, owner_id: int) -> list[RelativeSummary]:
        """All relatives linked to an owner, oldest link first. Empty if none."""
        query = (
            select(User)
            .join(UserRelationship, UserRelationship.relative_id == User.id)
            .where(UserRelationship.owner_id == owner_id)
            .order_by(UserRelationship.id)
        )
        async with DBTransaction(self.db):
            result = await self.db.execute(query)
            users = result.scalars().all()
        return [RelativeSummary.model_validate(user) for user in users]

    async def owners_of(self, relative_id: int) -> list[OwnerSummary]:
        """All owners a relative is linked to, oldest link first. Empty if none."""
        query = (
            select(User)
            .join(UserRelationship, UserRelationship.owner_id == User.id)
            .where(UserRelationship.relative_id == relative_id)
            .order_by(UserRelationship.id)
        )
        async with DBTransaction(self.db):
            result = await self.db.execute(query)
            users = result.scalars().all()
        return [OwnerSummary.model_validate(user) for user in users]

    async def _find_edge(self, owner_id: int, relative_id: int) -> UserRelationship | None:
        result = await self.db.execute(
            select(UserRelationship).where(
                UserRelationship.owner_id == owner_id,
                UserRelationship.relative_id == relative_id,
            )
        )
        return result.scalar_one_or_none()
