"""
Account Store

Owns the ``users`` and ``user_preferences`` tables.

Responsibilities:
-----------------
- Registration: user row + default preferences row, written as one unit
- Credential check with a uniform failure for unknown email / wrong password
- Profile reads (joined with dark_mode) and partial updates
- Preferences with read-repair: a missing row is created on first read

Every operation, reads included, runs inside a DBTransaction, so storage
failures surface as StorageError. Uniqueness is enforced by the
database (UNIQUE on users.email and user_preferences.user_id); the
pre-checks below only give the common case a cheap early exit, the
constraint settles concurrent writers.
"""

import asyncio
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from drivelink.core.errors import AuthError, DuplicateError, NotFoundError, ValidationError
from drivelink.core.logging import get_logger
from drivelink.core.security import dummy_password_hash, get_password_hash, verify_password
from drivelink.db.transaction import DBTransaction, is_unique_violation
from drivelink.models.user import User, UserPreferences
from drivelink.schemas.user import (
    PreferencesRecord,
    PreferencesUpdate,
    ProfileUpdate,
    UserLogin,
    UserProfile,
    UserRecord,
    UserRegister,
    parse_payload,
)

logger = get_logger(__name__)

EMAIL_TAKEN = "Email already exists"
INVALID_CREDENTIALS = "Invalid credentials"


def email_taken(exc: IntegrityError) -> bool:
    return is_unique_violation(exc, "ix_users_email", "users.email")


async def load_user(db: AsyncSession, user_id: int) -> User:
    """
    Fetch a user by id.

    Raises:
        NotFoundError: no user with this id
    """
    query = (
        select(User)
        .where(User.id == user_id)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(query)
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError(f"User with ID {user_id} not found")
    return user


def to_profile(user: User) -> UserProfile:
    """User row → UserProfile. No preferences row reads as dark_mode=False."""
    record = UserRecord.model_validate(user)
    dark_mode = user.preferences.dark_mode if user.preferences is not None else False
    return UserProfile(**record.model_dump(), dark_mode=dark_mode)


class AccountStore:
    """
    Persistence for user accounts and their preferences.

    Usage:
    ------
    store = AccountStore(db)
    user = await store.create_user({
        "email": "alice@x.com",
        "name": "Alice",
        "password": "s3cret-pass",
        "role": "car_owner",
        "car_name": "Tesla",
    })
    profile = await store.get_by_id(user.id)
    prefs = await store.toggle_dark_mode(user.id)
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    # ========================================
    # Users
    # ========================================

    async def create_user(self, data: Any) -> UserRecord:
        """
        Register a new user together with its default preferences.

        Args:
            data: UserRegister or plain dict (email, name, password, role,
                optional profile_img / car_img / car_name)

        Returns:
            UserRecord (never contains the password hash)

        Raises:
            ValidationError: missing/malformed fields, owner without car_name
            DuplicateError: email already registered
        """
        payload = parse_payload(UserRegister, data)

        async with DBTransaction(self.db):
            if await self._email_exists(payload.email):
                raise DuplicateError(EMAIL_TAKEN)

        hashed_password = await asyncio.to_thread(get_password_hash, payload.password)

        user = User(
            email=payload.email,
            name=payload.name,
            hashed_password=hashed_password,
            role=payload.role,
            profile_img=payload.profile_img,
            car_img=payload.car_img,
            car_name=payload.car_name,
        )
        # Both rows go out in the same flush
        user.preferences = UserPreferences(dark_mode=False)

        async with DBTransaction(self.db):
            self.db.add(user)
            try:
                await self.db.flush()
            except IntegrityError as exc:
                if not email_taken(exc):
                    raise
                raise DuplicateError(EMAIL_TAKEN) from exc

        logger.info("user_registered", user_id=user.id, role=user.role.value)
        return UserRecord.model_validate(user)

    async def authenticate(self, email: str, password: str) -> UserRecord:
        """
        Check credentials.

        Unknown email and wrong password raise the same AuthError, and both
        paths run one bcrypt verification.
        """
        payload = parse_payload(UserLogin, {"email": email, "password": password})

        async with DBTransaction(self.db):
            result = await self.db.execute(select(User).where(User.email == payload.email))
            user = result.scalar_one_or_none()

        if user is not None:
            hashed_password = user.hashed_password
        else:
            hashed_password = await asyncio.to_thread(dummy_password_hash)
        password_ok = await asyncio.to_thread(verify_password, payload.password, hashed_password)

        if user is None or not password_ok:
            logger.info("login_failed")
            raise AuthError(INVALID_CREDENTIALS)

        logger.info("login_succeeded", user_id=user.id)
        return UserRecord.model_validate(user)

    async def get_by_id(self, user_id: int) -> UserProfile:
        """Profile of one user, joined with dark_mode."""
        async with DBTransaction(self.db):
            user = await load_user(self.db, user_id)
        return to_profile(user)

    async def update_profile(self, user_id: int, data: Any) -> UserProfile:
        """
        Apply a partial profile update.

        Only supplied fields change. A new email is re-checked for shape
        (by ProfileUpdate) and uniqueness. Car owners cannot clear car_name.

        Raises:
            ValidationError: nothing to update, bad field, owner clearing car_name
            NotFoundError: unknown user
            DuplicateError: new email belongs to another account
        """
        changes = parse_payload(ProfileUpdate, data).changes()

        async with DBTransaction(self.db):
            user = await load_user(self.db, user_id)

            if "car_name" in changes and user.is_car_owner and not (changes["car_name"] or "").strip():
                raise ValidationError("car_name is required for car owners")

            new_email = changes.get("email")
            if new_email is not None and new_email != user.email and await self._email_exists(new_email):
                raise DuplicateError(EMAIL_TAKEN)

            for field, value in changes.items():
                setattr(user, field, value)

            try:
                await self.db.flush()
            except IntegrityError as exc:
                if not email_taken(exc):
                    raise
                raise DuplicateError(EMAIL_TAKEN) from exc

        logger.info("profile_updated", user_id=user_id, fields=sorted(changes))
        return to_profile(user)

    async def delete_user(self, user_id: int) -> bool:
        """
        Delete an account.

        The preferences row and every relationship edge touching the user
        are removed by ON DELETE CASCADE.
        """
        async with DBTransaction(self.db):
            user = await load_user(self.db, user_id)
            await self.db.delete(user)

        logger.info("user_deleted", user_id=user_id)
        return True

    # ========================================
    # Preferences
    # ========================================

    async def get_preferences(self, user_id: int) -> PreferencesRecord:
        """Preferences of a user; a missing row is created with defaults."""
        async with DBTransaction(self.db):
            prefs = await self._ensure_preferences(user_id)
        return PreferencesRecord.model_validate(prefs)

    async def set_preferences(self, user_id: int, data: Any) -> PreferencesRecord:
        """
        Upsert preferences.

        Raises:
            ValidationError: dark_mode not given ("No preferences specified to update")
            NotFoundError: unknown user
        """
        payload = parse_payload(PreferencesUpdate, data)

        async with DBTransaction(self.db):
            prefs = await self._ensure_preferences(user_id, for_update=True)
            prefs.dark_mode = payload.dark_mode

        logger.info("preferences_updated", user_id=user_id, dark_mode=prefs.dark_mode)
        return PreferencesRecord.model_validate(prefs)

    async def toggle_dark_mode(self, user_id: int) -> PreferencesRecord:
        """Flip dark_mode (row locked for the read-modify-write)."""
        async with DBTransaction(self.db):
            prefs = await self._ensure_preferences(user_id, for_update=True)
            prefs.dark_mode = not prefs.dark_mode

        logger.info("dark_mode_toggled", user_id=user_id, dark_mode=prefs.dark_mode)
        return PreferencesRecord.model_validate(prefs)

    # ========================================
    # Helpers
    # ========================================

    async def _email_exists(self, email: str) -> bool:
        result = await self.db.execute(select(User.id).where(User.email == email))
        return result.scalar_one_or_none() is not None

    async def _ensure_preferences(self, user_id: int, for_update: bool = False) -> UserPreferences:
        """
        Return the preferences row for a user, creating it if absent.

        Must be the first statement of its transaction: losing a creation
        race rolls the transaction back before re-reading the winner's row.
        """
        query = (
            select(UserPreferences)
            .where(UserPreferences.user_id == user_id)
            # A row cached from an earlier call may be stale
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update()

        result = await self.db.execute(query)
        prefs = result.scalar_one_or_none()
        if prefs is not None:
            return prefs

        await load_user(self.db, user_id)

        prefs = UserPreferences(user_id=user_id, dark_mode=False)
        self.db.add(prefs)
        try:
            await self.db.flush()
        except IntegrityError:
            # Another task created the row first, or deleted the user
            await self.db.rollback()
            result = await self.db.execute(query)
            prefs = result.scalar_one_or_none()
            if prefs is None:
                raise NotFoundError(f"User with ID {user_id} not found")
            return prefs

        logger.info("preferences_created", user_id=user_id)
        return prefs
