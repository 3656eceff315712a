"""
Integration tests for AccountService.

End-to-end flows across both stores, the token issuer and the database,
including concurrent writers on separate sessions.
"""

import asyncio

import pytest
from sqlalchemy import func, select

from drivelink.core.errors import AuthError, DuplicateError, NotFoundError, RoleError
from drivelink.models.user import User, UserPreferences, UserRelationship, UserRole
from drivelink.schemas.user import AuthResult, RelationshipRecord
from drivelink.services.account_service import AccountService


pytestmark = pytest.mark.integration


# ================================
# Registration & Login
# ================================

@pytest.mark.asyncio
class TestRegisterAndLogin:

    async def test_register_then_get_profile(self, account_service, owner_data):
        result = await account_service.register(owner_data)

        assert result.token_type == "bearer"
        profile = await account_service.get_profile(result.user.id)

        assert profile.email == owner_data["email"]
        assert profile.name == owner_data["name"]
        assert profile.role == UserRole.CAR_OWNER
        assert profile.car_name == owner_data["car_name"]
        assert profile.car_img == owner_data["car_img"]
        assert profile.profile_img is None
        assert "password" not in profile.model_dump()
        assert "hashed_password" not in profile.model_dump()

    async def test_register_token_names_the_user(self, account_service, relative_data):
        result = await account_service.register(relative_data)

        claims = account_service.verify_token(result.token)

        assert claims.id == result.user.id
        assert claims.email == relative_data["email"]
        assert claims.role == UserRole.RELATIVE

    async def test_register_twice(self, account_service, db_session, owner_data):
        await account_service.register(owner_data)

        with pytest.raises(DuplicateError):
            await account_service.register(owner_data)

        assert await db_session.scalar(select(func.count()).select_from(User)) == 1

    async def test_login(self, account_service, owner_data):
        registered = await account_service.register(owner_data)

        result = await account_service.login(
            {"email": owner_data["email"], "password": owner_data["password"]}
        )

        assert result.user.id == registered.user.id
        assert account_service.verify_token(result.token).id == registered.user.id

    async def test_login_failures_are_identical(self, account_service, owner_data):
        await account_service.register(owner_data)

        with pytest.raises(AuthError) as wrong_password:
            await account_service.login({"email": owner_data["email"], "password": "nope"})
        with pytest.raises(AuthError) as unknown_email:
            await account_service.login({"email": "ghost@x.com", "password": "nope"})

        assert wrong_password.value.to_dict() == unknown_email.value.to_dict()
        assert wrong_password.value.to_dict() == {"kind": "auth", "message": "Invalid credentials"}


# ================================
# Owner / Relative Scenario
# ================================

@pytest.mark.asyncio
class TestOwnerRelativeScenario:

    async def test_alice_and_bob(self, account_service):
        alice = await account_service.register({
            "email": "alice@x.com", "name": "Alice", "password": "alice-password",
            "role": "car_owner", "car_name": "Tesla",
        })
        bob = await account_service.register({
            "email": "bob@x.com", "name": "Bob", "password": "bob-password",
            "role": "relative",
        })

        edge = await account_service.add_relative(alice.user.id, bob.user.id)
        assert (edge.owner_id, edge.relative_id) == (alice.user.id, bob.user.id)

        owner = await account_service.get_owner_with_relatives(alice.user.id)
        assert owner.id == alice.user.id
        assert owner.car_name == "Tesla"
        assert [r.model_dump() for r in owner.relatives] == [
            {"id": bob.user.id, "email": "bob@x.com", "name": "Bob"}
        ]

        owners = await account_service.get_owners_for_relative(bob.user.id)
        assert [o.id for o in owners] == [alice.user.id]
        assert owners[0].car_name == "Tesla"

        assert await account_service.remove_relative(alice.user.id, bob.user.id) is True
        owner = await account_service.get_owner_with_relatives(alice.user.id)
        assert owner.relatives == []

    async def test_owner_view_requires_car_owner(self, account_service, relative):
        with pytest.raises(RoleError) as exc_info:
            await account_service.get_owner_with_relatives(relative.id)

        assert exc_info.value.message == "User is not a car owner"

    async def test_owner_view_unknown_user(self, account_service):
        with pytest.raises(NotFoundError):
            await account_service.get_owner_with_relatives(999)

    async def test_owners_for_unknown_relative(self, account_service):
        with pytest.raises(NotFoundError):
            await account_service.get_owners_for_relative(999)

    async def test_relative_cannot_add_relatives(self, account_service, db_session, owner, relative):
        with pytest.raises(RoleError):
            await account_service.add_relative(relative.id, owner.id)

        assert await db_session.scalar(select(func.count()).select_from(UserRelationship)) == 0

    async def test_deleting_a_user_removes_its_edges(self, account_service, db_session, owner, relative):
        await account_service.add_relative(owner.id, relative.id)

        await account_service.accounts.delete_user(relative.id)

        assert await db_session.scalar(select(func.count()).select_from(UserRelationship)) == 0
        owner_view = await account_service.get_owner_with_relatives(owner.id)
        assert owner_view.relatives == []


# ================================
# Preferences
# ================================

@pytest.mark.asyncio
class TestPreferencesFlow:

    async def test_preferences_round_trip(self, account_service, owner):
        assert (await account_service.get_preferences(owner.id)).dark_mode is False

        updated = await account_service.update_preferences(owner.id, {"dark_mode": True})
        assert updated.dark_mode is True

        toggled = await account_service.toggle_dark_mode(owner.id)
        assert toggled.dark_mode is False
        assert (await account_service.get_profile(owner.id)).dark_mode is False

    async def test_update_profile(self, account_service, owner):
        profile = await account_service.update_profile(owner.id, {"name": "Alicia"})

        assert profile.name == "Alicia"
        assert profile.dark_mode is False


# ================================
# Concurrent Writers
# ================================

@pytest.mark.asyncio
class TestConcurrentRegistration:

    async def test_same_email_registers_once(self, database, owner_data):
        async def attempt():
            async with database.session() as session:
                return await AccountService(session).register(owner_data)

        results = await asyncio.gather(attempt(), attempt(), return_exceptions=True)

        successes = [r for r in results if isinstance(r, AuthResult)]
        duplicates = [r for r in results if isinstance(r, DuplicateError)]
        assert len(successes) == 1, results
        assert len(duplicates) == 1, results

        async with database.session() as session:
            users = await session.scalar(select(func.count()).select_from(User))
            prefs = await session.scalar(select(func.count()).select_from(UserPreferences))
        assert users == 1
        assert prefs == 1


@pytest.mark.asyncio
class TestConcurrentRelationships:

    async def test_same_edge_added_once(self, database, owner, relative):
        async def attempt():
            async with database.session() as session:
                return await AccountService(session).add_relative(owner.id, relative.id)

        results = await asyncio.gather(attempt(), attempt(), return_exceptions=True)

        created = [r for r in results if isinstance(r, RelationshipRecord)]
        duplicates = [r for r in results if isinstance(r, DuplicateError)]
        assert len(created) == 1, results
        assert len(duplicates) == 1, results

        async with database.session() as session:
            edges = await session.scalar(select(func.count()).select_from(UserRelationship))
        assert edges == 1
