"""
Tests for RelationshipStore (owner → relative edges).
"""

import pytest
from sqlalchemy import event, func, select, text
from sqlalchemy.exc import IntegrityError, OperationalError

from drivelink.core.errors import DuplicateError, NotFoundError, RoleError, StorageError
from drivelink.db.transaction import is_foreign_key_violation, is_unique_violation
from drivelink.models.user import UserRelationship
from drivelink.services.relationships import EDGE_UNIQUE, RelationshipStore


async def edge_count(session) -> int:
    return await session.scalar(select(func.count()).select_from(UserRelationship))


@pytest.mark.asyncio
class TestAddEdge:

    async def test_add_edge(self, relationship_store, owner, relative):
        edge = await relationship_store.add_edge(owner.id, relative.id)

        assert edge.id is not None
        assert edge.owner_id == owner.id
        assert edge.relative_id == relative.id
        assert edge.created_at is not None

    async def test_owner_must_be_car_owner(self, relationship_store, db_session, relative, account_store):
        other_relative = await account_store.create_user({
            "email": "carol@x.com", "name": "Carol", "password": "carol-password", "role": "relative",
        })

        with pytest.raises(RoleError) as exc_info:
            await relationship_store.add_edge(relative.id, other_relative.id)

        assert exc_info.value.message == "User must be a car owner to add relatives"
        assert await edge_count(db_session) == 0

    async def test_relative_must_not_be_car_owner(self, relationship_store, db_session, owner, account_store):
        other_owner = await account_store.create_user({
            "email": "dave@x.com", "name": "Dave", "password": "dave-password",
            "role": "car_owner", "car_name": "Volvo",
        })

        with pytest.raises(RoleError) as exc_info:
            await relationship_store.add_edge(owner.id, other_owner.id)

        assert exc_info.value.message == "Cannot add a car owner as a relative"
        assert await edge_count(db_session) == 0

    async def test_self_edge_rejected(self, relationship_store, owner):
        with pytest.raises(RoleError):
            await relationship_store.add_edge(owner.id, owner.id)

    async def test_unknown_users(self, relationship_store, owner, relative):
        with pytest.raises(NotFoundError):
            await relationship_store.add_edge(owner.id, 999)
        with pytest.raises(NotFoundError):
            await relationship_store.add_edge(999, relative.id)

    async def test_duplicate_edge(self, relationship_store, db_session, owner, relative):
        await relationship_store.add_edge(owner.id, relative.id)

        with pytest.raises(DuplicateError) as exc_info:
            await relationship_store.add_edge(owner.id, relative.id)

        assert exc_info.value.message == "Relationship already exists"
        assert await edge_count(db_session) == 1

    async def test_endpoint_deleted_before_insert(self, relationship_store, db_session, owner, relative):
        def point_at_missing_user(mapper, connection, target):
            target.relative_id = 9999

        event.listen(UserRelationship, "before_insert", point_at_missing_user)
        try:
            with pytest.raises(NotFoundError) as exc_info:
                await relationship_store.add_edge(owner.id, relative.id)
        finally:
            event.remove(UserRelationship, "before_insert", point_at_missing_user)

        assert exc_info.value.message == "User no longer exists"
        assert isinstance(exc_info.value.__cause__, IntegrityError)
        assert await edge_count(db_session) == 0


@pytest.mark.asyncio
class TestRemoveEdge:

    async def test_remove_existing(self, relationship_store, db_session, owner, relative):
        await relationship_store.add_edge(owner.id, relative.id)

        assert await relationship_store.remove_edge(owner.id, relative.id) is True
        assert await relationship_store.relatives_of(owner.id) == []
        assert await edge_count(db_session) == 0

    async def test_remove_missing(self, relationship_store, owner, relative):
        with pytest.raises(NotFoundError) as exc_info:
            await relationship_store.remove_edge(owner.id, relative.id)

        assert exc_info.value.message == "Relationship does not exist"

    async def test_remove_is_directed(self, relationship_store, owner, relative):
        await relationship_store.add_edge(owner.id, relative.id)

        with pytest.raises(NotFoundError):
            await relationship_store.remove_edge(relative.id, owner.id)

    async def test_remove_twice(self, relationship_store, owner, relative):
        await relationship_store.add_edge(owner.id, relative.id)
        await relationship_store.remove_edge(owner.id, relative.id)

        with pytest.raises(NotFoundError):
            await relationship_store.remove_edge(owner.id, relative.id)


@pytest.mark.asyncio
class TestTraversal:

    async def test_relatives_of_empty(self, relationship_store, owner):
        assert await relationship_store.relatives_of(owner.id) == []

    async def test_owners_of_empty(self, relationship_store, relative):
        assert await relationship_store.owners_of(relative.id) == []

    async def test_both_directions(self, relationship_store, account_store, owner, relative):
        second_owner = await account_store.create_user({
            "email": "erin@x.com", "name": "Erin", "password": "erin-password",
            "role": "car_owner", "car_name": "Golf",
        })
        await relationship_store.add_edge(owner.id, relative.id)
        await relationship_store.add_edge(second_owner.id, relative.id)

        relatives = await relationship_store.relatives_of(owner.id)
        owners = await relationship_store.owners_of(relative.id)

        assert [(r.id, r.email, r.name) for r in relatives] == [(relative.id, "bob@x.com", "Bob")]
        assert [o.id for o in owners] == [owner.id, second_owner.id]
        assert owners[0].car_name == "Tesla"
        assert owners[0].car_img == "https://img.example.com/tesla.png"
        assert owners[1].car_name == "Golf"

    async def test_summaries_have_no_password(self, relationship_store, owner, relative):
        await relationship_store.add_edge(owner.id, relative.id)

        relative_summary = (await relationship_store.relatives_of(owner.id))[0]
        owner_summary = (await relationship_store.owners_of(relative.id))[0]

        assert set(relative_summary.model_dump()) == {"id", "email", "name"}
        assert "hashed_password" not in owner_summary.model_dump()


# ================================
# Storage Failures
# ================================

@pytest.mark.asyncio
class TestStorageFailures:

    async def drop_edges(self, database):
        async with database.engine.begin() as conn:
            await conn.execute(text("DROP TABLE user_relationships"))

    async def test_relatives_of(self, database, owner):
        await self.drop_edges(database)

        async with database.session() as session:
            with pytest.raises(StorageError) as exc_info:
                await RelationshipStore(session).relatives_of(owner.id)

        assert isinstance(exc_info.value.__cause__, OperationalError)

    async def test_owners_of(self, database, relative):
        await self.drop_edges(database)

        async with database.session() as session:
            with pytest.raises(StorageError):
                await RelationshipStore(session).owners_of(relative.id)


# ================================
# Integrity Error Classification
# ================================

def integrity_error(message: str) -> IntegrityError:
    return IntegrityError("INSERT INTO user_relationships", None, Exception(message))


class TestIntegrityErrorClassification:
    COLUMNS = ("user_relationships.owner_id", "user_relationships.relative_id")

    def test_sqlite_unique(self):
        exc = integrity_error(
            "UNIQUE constraint failed: user_relationships.owner_id, user_relationships.relative_id"
        )

        assert is_unique_violation(exc, EDGE_UNIQUE, *self.COLUMNS)
        assert not is_foreign_key_violation(exc)

    def test_postgres_unique(self):
        exc = integrity_error(
            'duplicate key value violates unique constraint "uq_user_relationships_owner_id_relative_id"'
        )

        assert is_unique_violation(exc, EDGE_UNIQUE, *self.COLUMNS)

    def test_other_unique_constraint(self):
        exc = integrity_error("UNIQUE constraint failed: users.email")

        assert not is_unique_violation(exc, EDGE_UNIQUE, *self.COLUMNS)

    def test_foreign_key(self):
        sqlite = integrity_error("FOREIGN KEY constraint failed")
        postgres = integrity_error(
            'insert or update on table "user_relationships" violates foreign key constraint '
            '"fk_user_relationships_relative_id_users"'
        )

        for exc in (sqlite, postgres):
            assert is_foreign_key_violation(exc)
            assert not is_unique_violation(exc, EDGE_UNIQUE, *self.COLUMNS)

    def test_check_constraint(self):
        exc = integrity_error("CHECK constraint failed: not_self")

        assert not is_unique_violation(exc, EDGE_UNIQUE, *self.COLUMNS)
        assert not is_foreign_key_violation(exc)
