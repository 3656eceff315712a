"""
Typed errors raised by the account services.

Every failure of a store or service call is exactly one of these kinds.
The transport layer maps ``kind`` to a status code; nothing in this package
knows about HTTP.

    validation  → malformed or missing input
    duplicate   → uniqueness violation (email, owner/relative pair)
    auth        → bad credentials, missing/invalid/expired token
    not_found   → referenced user or relationship does not exist
    role        → operation not allowed for the account's role
    internal    → unexpected storage failure (details stay in __cause__)
"""

from typing import Any


class AccountError(Exception):
    """Base class for all account errors."""

    kind: str = "internal"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        """Plain-data form handed to the transport collaborator."""
        return {"kind": self.kind, "message": self.message}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


class ValidationError(AccountError):
    """Input is missing or malformed."""

    kind = "validation"


class DuplicateError(AccountError):
    """A uniqueness constraint would be violated."""

    kind = "duplicate"


class AuthError(AccountError):
    """
    Authentication failed.

    Login failures always use the same message whether the email is
    unknown or the password is wrong.
    """

    kind = "auth"


class TokenExpiredError(AuthError):
    """Token signature is valid but ``exp`` has passed."""

    def __init__(self, message: str = "Token expired"):
        super().__init__(message)


class InvalidTokenError(AuthError):
    """Token is malformed, tampered with, or missing required claims."""

    def __init__(self, message: str = "Invalid token"):
        super().__init__(message)


class NotFoundError(AccountError):
    """Referenced entity does not exist."""

    kind = "not_found"


class RoleError(AccountError):
    """Operation is not permitted for this account's role."""

    kind = "role"


class StorageError(AccountError):
    """Unexpected database failure (connection loss, driver error, ...)."""

    kind = "internal"

    def __init__(self, message: str = "An unexpected storage error occurred"):
        super().__init__(message)


__all__ = [
    "AccountError",
    "ValidationError",
    "DuplicateError",
    "AuthError",
    "TokenExpiredError",
    "InvalidTokenError",
    "NotFoundError",
    "RoleError",
    "StorageError",
]
