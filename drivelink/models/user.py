"""
User Models

This module contains the account models.

Models Included:
----------------
1. UserRole (Enum) - Closed set of account roles
2. User - Core user account information
3. UserPreferences - Per-user settings (1-to-1 with users)
4. UserRelationship - Owner → relative edge (many-to-many between users)

Database Tables:
----------------
- users: Stores user account data (email UNIQUE)
- user_preferences: Stores user settings (user_id UNIQUE, cascade delete)
- user_relationships: Stores owner/relative edges
  (UNIQUE(owner_id, relative_id), both ends cascade delete)

Learning Resources:
-------------------
- SQLAlchemy Relationships: https://docs.sqlalchemy.org/en/20/orm/basic_relationships.html
- Enums in SQLAlchemy: https://docs.sqlalchemy.org/en/20/core/type_basics.html#sqlalchemy.types.Enum
"""

import enum

from sqlalchemy import Boolean, CheckConstraint, Enum, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from drivelink.db.base import BaseModel, String100, String255


# ================================
# Enums for Choice Fields
# ================================

class UserRole(str, enum.Enum):
    """
    Account role, fixed at registration.

    - CAR_OWNER: registers a vehicle and manages relatives
    - RELATIVE: linked to one or more owners, read access only

    Database Storage:
    -----------------
    Stored as VARCHAR holding the value ('car_owner' / 'relative').
    There is no operation that changes a user's role.
    """

    CAR_OWNER = "car_owner"
    RELATIVE = "relative"

    def __str__(self) -> str:
        """Return the string value of the enum."""
        return self.value


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


# ================================
# User Model
# ================================

class User(BaseModel):
    """
    User account model.

    Table: users
    ------------
    Inherits id, created_at and updated_at from BaseModel.

    Car owners carry the vehicle fields (car_name is required for them at
    registration); relatives usually leave them empty.

    Security:
    ---------
    hashed_password is a bcrypt hash and never leaves the store: every
    output record is built from the pydantic schemas, which do not declare
    it.

    Relationships:
    --------------
    - preferences (1-to-1): dark mode and future settings
    - owner/relative edges live in user_relationships and are removed by
      the database when either end is deleted
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String255,
        unique=True,
        index=True,
        nullable=False,
        comment="User's email address, unique (case-sensitive as stored)"
    )
    # The UNIQUE constraint is what resolves concurrent registrations:
    # the losing INSERT fails with IntegrityError → DuplicateError.

    name: Mapped[str] = mapped_column(
        String100,
        nullable=False,
        comment="User's display name"
    )

    hashed_password: Mapped[str] = mapped_column(
        String255,
        nullable=False,
        comment="bcrypt hash of the user's password"
    )

    role: Mapped[UserRole] = mapped_column(
        Enum(
            UserRole,
            name="user_role",
            native_enum=False,
            length=20,
            values_callable=_enum_values,
            validate_strings=True,
        ),
        nullable=False,
        comment="Account role: car_owner or relative (immutable)"
    )

    profile_img: Mapped[str | None] = mapped_column(
        String255,
        nullable=True,
        default=None,
        comment="URL or path of the profile image"
    )

    car_img: Mapped[str | None] = mapped_column(
        String255,
        nullable=True,
        default=None,
        comment="URL or path of the car image"
    )

    car_name: Mapped[str | None] = mapped_column(
        String100,
        nullable=True,
        default=None,
        comment="Vehicle display name (required for car owners)"
    )

    # ================================
    # Relationships
    # ================================

    preferences: Mapped["UserPreferences | None"] = relationship(
        "UserPreferences",
        back_populates="user",
        cascade="all, delete-orphan",
        uselist=False,
        lazy="joined",
        passive_deletes=True,
    )
    # One-to-One with UserPreferences.
    # Assigning user.preferences before the first flush inserts both rows
    # in the same flush, so registration writes them as one unit.

    @property
    def is_car_owner(self) -> bool:
        return self.role == UserRole.CAR_OWNER

    def __repr__(self) -> str:
        """Example output: User(id=1, email='alice@example.com', role=car_owner)"""
        return f"User(id={self.id}, email='{self.email}', role={self.role})"


# ================================
# UserPreferences Model
# ================================

class UserPreferences(BaseModel):
    """
    User preferences and settings model.

    Table: user_preferences
    -----------------------
    One row per user (user_id is UNIQUE). Created together with the user
    at registration; if it is ever missing, the first preferences read
    creates it with defaults.

    Default Values:
    ---------------
    - dark_mode: False
    """

    __tablename__ = "user_preferences"

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        comment="Foreign key to users table"
    )

    dark_mode: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="Whether the UI uses the dark theme"
    )

    user: Mapped["User"] = relationship(
        "User",
        back_populates="preferences",
        lazy="joined"
    )

    def __repr__(self) -> str:
        return (
            f"UserPreferences(id={self.id}, user_id={self.user_id}, "
            f"dark_mode={self.dark_mode})"
        )


# ================================
# UserRelationship Model
# ================================

class UserRelationship(BaseModel):
    """
    Directed edge from a car owner to one of their relatives.

    Table: user_relationships
    -------------------------
    - owner_id → users.id (must be a car_owner when the edge is created)
    - relative_id → users.id (must be a relative when the edge is created)
    - UNIQUE(owner_id, relative_id): no duplicate edges
    - ON DELETE CASCADE on both ends

    Role checks happen in the same transaction as the insert
    (see RelationshipStore.add_edge); the UNIQUE constraint settles races
    between concurrent inserts of the same pair.
    """

    __tablename__ = "user_relationships"
    __table_args__ = (
        UniqueConstraint(
            "owner_id",
            "relative_id",
            name="uq_user_relationships_owner_id_relative_id",
        ),
        CheckConstraint("owner_id <> relative_id", name="not_self"),
    )

    owner_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
        comment="Car owner end of the edge"
    )

    relative_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
        comment="Relative end of the edge"
    )

    def __repr__(self) -> str:
        return (
            f"UserRelationship(id={self.id}, owner_id={self.owner_id}, "
            f"relative_id={self.relative_id})"
        )

