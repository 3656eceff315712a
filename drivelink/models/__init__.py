"""
Database Models

Import models from this module to ensure they're registered with SQLAlchemy:

    from drivelink.models import User, UserPreferences, UserRelationship

This ensures that:
1. Alembic can detect all models for migrations
2. Relationships resolve correctly
"""

from drivelink.models.user import (
    User,
    UserPreferences,
    UserRelationship,
    UserRole,
)

__all__ = [
    "User",
    "UserPreferences",
    "UserRelationship",
    "UserRole",
]
