"""
Account schemas (Pydantic models for input payloads and output records).

Input payloads validate shape before anything touches the database.
Output records are what leaves the services: none of them declares a
password field, so a hash can never be serialized by accident.

References:
-----------
- Pydantic: https://docs.pydantic.dev/latest/
"""

import re
from datetime import datetime
from typing import Annotated, Any, Optional, TypeVar

from pydantic import AfterValidator, BaseModel, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from drivelink.core.errors import ValidationError
from drivelink.models.user import UserRole

# Practical email shape check: something@something.tld, no whitespace.
# Email is stored exactly as given (no case folding).
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# bcrypt hard limit (UTF-8 bytes)
MAX_PASSWORD_BYTES = 72

PayloadT = TypeVar("PayloadT", bound=BaseModel)


def _check_email(value: str) -> str:
    if not EMAIL_RE.match(value):
        raise ValueError("Invalid email format")
    return value


def _check_name(value: str) -> str:
    if not value.strip():
        raise ValueError("Name must not be blank")
    return value


EmailText = Annotated[str, Field(max_length=255), AfterValidator(_check_email)]
NameText = Annotated[str, Field(min_length=1, max_length=100), AfterValidator(_check_name)]


# ================================
# Input Payloads
# ================================

class UserRegister(BaseModel):
    """
    Registration payload.

    Example:
        {
            "email": "alice@x.com",
            "name": "Alice",
            "password": "s3cret-pass",
            "role": "car_owner",
            "car_name": "Tesla"
        }

    car_name is required when role is car_owner.
    """

    email: EmailText = Field(..., examples=["alice@x.com"])
    name: NameText = Field(..., examples=["Alice"])
    password: str = Field(..., min_length=1, examples=["s3cret-pass"])
    role: UserRole = Field(..., examples=["car_owner", "relative"])
    profile_img: Optional[str] = Field(None, max_length=255)
    car_img: Optional[str] = Field(None, max_length=255)
    car_name: Optional[str] = Field(None, max_length=100, examples=["Tesla"])

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        return value

    @model_validator(mode="after")
    def owner_needs_car_name(self) -> "UserRegister":
        if self.role == UserRole.CAR_OWNER and not (self.car_name or "").strip():
            raise ValueError("car_name is required for car owners")
        return self


class UserLogin(BaseModel):
    """Login payload. Email shape is not checked here: unknown emails fail as AuthError."""

    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class ProfileUpdate(BaseModel):
    """
    Partial profile update.

    Only supplied fields change. name and email set to null count as not
    supplied; car_name set to null clears it (not allowed for car owners).
    """

    name: Optional[NameText] = None
    email: Optional[EmailText] = None
    car_name: Optional[str] = Field(None, max_length=100)

    def changes(self) -> dict[str, Any]:
        """Fields to write, in the form {column: new value}."""
        updates = {field: getattr(self, field) for field in self.model_fields_set}
        for field in ("name", "email"):
            if updates.get(field, "") is None:
                del updates[field]
        return updates

    @model_validator(mode="after")
    def at_least_one_field(self) -> "ProfileUpdate":
        if not self.changes():
            raise ValueError("No data provided for update")
        return self


class PreferencesUpdate(BaseModel):
    """Preferences update. dark_mode must be given."""

    dark_mode: Optional[bool] = None

    @model_validator(mode="after")
    def has_preferences(self) -> "PreferencesUpdate":
        if self.dark_mode is None:
            raise ValueError("No preferences specified to update")
        return self


# ================================
# Output Records
# ================================

class UserRecord(BaseModel):
    """
    Public view of a user. Excludes the password hash.

    Example:
        {
            "id": 1,
            "email": "alice@x.com",
            "name": "Alice",
            "role": "car_owner",
            "profile_img": null,
            "car_img": null,
            "car_name": "Tesla",
            "created_at": "2026-10-19T08:00:00Z"
        }
    """

    id: int
    email: str
    name: str
    role: UserRole
    profile_img: Optional[str] = None
    car_img: Optional[str] = None
    car_name: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class UserProfile(UserRecord):
    """User record joined with the dark_mode preference."""

    dark_mode: bool = False


class PreferencesRecord(BaseModel):
    user_id: int
    dark_mode: bool

    model_config = {"from_attributes": True}


class RelationshipRecord(BaseModel):
    """An owner → relative edge."""

    id: int
    owner_id: int
    relative_id: int
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class RelativeSummary(BaseModel):
    """A relative as seen from the owner's side."""

    id: int
    email: str
    name: str

    model_config = {"from_attributes": True}


class OwnerSummary(BaseModel):
    """An owner as seen from the relative's side (includes the car)."""

    id: int
    email: str
    name: str
    profile_img: Optional[str] = None
    car_img: Optional[str] = None
    car_name: Optional[str] = None

    model_config = {"from_attributes": True}


class OwnerWithRelatives(UserProfile):
    relatives: list[RelativeSummary] = Field(default_factory=list)


class TokenClaims(BaseModel):
    """Claims carried by a user token."""

    id: int
    email: str
    role: UserRole


class AuthResult(BaseModel):
    """
    Returned by register and login.

    Example:
        {
            "user": {"id": 1, "email": "alice@x.com", ...},
            "token": "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9...",
            "token_type": "bearer"
        }
    """

    user: UserRecord
    token: str
    token_type: str = "bearer"


# ================================
# Helpers
# ================================

def validation_message(exc: PydanticValidationError) -> str:
    """Flatten pydantic errors into one readable sentence."""
    parts = []
    for error in exc.errors():
        message = error["msg"].removeprefix("Value error, ")
        location = ".".join(str(part) for part in error["loc"])
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts)


def parse_payload(schema: type[PayloadT], data: Any) -> PayloadT:
    """
    Validate plain data against a payload schema.

    Raises:
        ValidationError: with every field problem in the message
    """
    if isinstance(data, schema):
        return data
    if data is None:
        data = {}
    try:
        return schema.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(validation_message(exc)) from exc
