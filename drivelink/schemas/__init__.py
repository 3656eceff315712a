"""Pydantic schemas for account payloads and records."""

from drivelink.schemas.user import (
    AuthResult,
    OwnerSummary,
    OwnerWithRelatives,
    PreferencesRecord,
    PreferencesUpdate,
    ProfileUpdate,
    RelationshipRecord,
    RelativeSummary,
    TokenClaims,
    UserLogin,
    UserProfile,
    UserRecord,
    UserRegister,
    parse_payload,
)

__all__ = [
    "AuthResult",
    "OwnerSummary",
    "OwnerWithRelatives",
    "PreferencesRecord",
    "PreferencesUpdate",
    "ProfileUpdate",
    "RelationshipRecord",
    "RelativeSummary",
    "TokenClaims",
    "UserLogin",
    "UserProfile",
    "UserRecord",
    "UserRegister",
    "parse_payload",
]
