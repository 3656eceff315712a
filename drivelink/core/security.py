"""
Security utilities for authentication.

This module provides:
- Password hashing and verification (bcrypt)
- JWT token creation and validation (python-jose)
- User token claims: {"sub": <user id>, "email", "role"}

References:
-----------
- JWT Standard: https://jwt.io/introduction
- bcrypt: https://github.com/pyca/bcrypt
"""

from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import ValidationError as PydanticValidationError

from drivelink.core.config import settings
from drivelink.core.errors import InvalidTokenError, TokenExpiredError
from drivelink.schemas.user import TokenClaims

# bcrypt only looks at the first 72 bytes of the input.
BCRYPT_MAX_PASSWORD_BYTES = 72


# ================================
# Password Hashing
# ================================

def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plaintext password against a bcrypt hash.

    bcrypt.checkpw re-hashes with the salt embedded in ``hashed_password``
    and compares in constant time.

    Example:
        >>> hashed = get_password_hash("secret")
        >>> verify_password("secret", hashed)
        True
        >>> verify_password("wrong", hashed)
        False
    """
    password_bytes = plain_password.encode("utf-8")
    if len(password_bytes) > BCRYPT_MAX_PASSWORD_BYTES:
        return False
    return bcrypt.checkpw(password_bytes, hashed_password.encode("utf-8"))


def get_password_hash(password: str) -> str:
    """
    Hash a plaintext password.

    Each call generates a fresh salt, so hashing the same password twice
    yields two different strings that both verify.

    Hash Format:
    ------------
    $2b$12$R9h/cIPz0gi.URNNX3kh2OPST9/PgBkqquzi.Ss7KIUgO2t0jWMUW
     │   │  └─ 22 chars salt + 31 chars hash
     │   └──── cost factor (settings.BCRYPT_ROUNDS)
     └──────── algorithm
    """
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


@lru_cache(maxsize=1)
def dummy_password_hash() -> str:
    """
    Hash checked when a login email does not exist.

    Running one bcrypt verification on the unknown-email path makes it
    cost the same as a wrong password.
    """
    return get_password_hash("drivelink-dummy-password")


# ================================
# JWT Tokens
# ================================

def create_access_token(data: dict[str, Any], expires_delta: timedelta | None = None) -> str:
    """
    Create a signed JWT.

    Args:
        data: Claims to include. Should contain "sub".
        expires_delta: Lifetime of the token. Defaults to
            settings.ACCESS_TOKEN_EXPIRE_MINUTES. A negative delta produces
            an already-expired token (useful in tests).

    Returns:
        Encoded token string (header.payload.signature)
    """
    to_encode = data.copy()

    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    now = datetime.now(timezone.utc)
    to_encode.update({"exp": now + expires_delta, "iat": now})

    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and verify a JWT.

    Checks the signature, the algorithm and the ``exp`` claim.

    Raises:
        TokenExpiredError: Signature valid but token has expired
        InvalidTokenError: Anything else (tampered, malformed, wrong key)
    """
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError as exc:
        raise TokenExpiredError() from exc
    except JWTError as exc:
        raise InvalidTokenError() from exc


def issue_user_token(user: Any, expires_delta: timedelta | None = None) -> str:
    """
    Issue a token for a user record or ORM object.

    Only id, email and role go into the token.
    """
    role = getattr(user.role, "value", user.role)
    return create_access_token(
        data={"sub": str(user.id), "email": user.email, "role": role},
        expires_delta=expires_delta,
    )


def verify_user_token(token: str) -> TokenClaims:
    """
    Verify a user token and return its claims.

    Raises:
        TokenExpiredError: Token has expired
        InvalidTokenError: Token invalid or claims malformed
    """
    payload = decode_access_token(token)
    try:
        return TokenClaims(
            id=payload.get("sub"),
            email=payload.get("email"),
            role=payload.get("role"),
        )
    except PydanticValidationError as exc:
        raise InvalidTokenError() from exc
