"""
Account Service

Orchestrates the account and relationship stores with the token issuer.
This is the surface a transport layer (HTTP routes, RPC handlers, ...)
calls: plain data in, pydantic records or typed AccountError out.

    async with database.session() as session:
        service = AccountService(session)

        alice = await service.register({
            "email": "alice@x.com", "name": "Alice", "password": "s3cret-pass",
            "role": "car_owner", "car_name": "Tesla",
        })
        bob = await service.register({
            "email": "bob@x.com", "name": "Bob", "password": "s3cret-pass",
            "role": "relative",
        })

        claims = service.verify_token(alice.token)
        service.require_car_owner(claims)
        await service.add_relative(claims.id, bob.user.id)
"""

from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from drivelink.core.errors import AuthError, RoleError
from drivelink.core.logging import get_logger
from drivelink.core.security import issue_user_token, verify_user_token
from drivelink.models.user import UserRole
from drivelink.schemas.user import (
    AuthResult,
    OwnerSummary,
    OwnerWithRelatives,
    PreferencesRecord,
    RelationshipRecord,
    TokenClaims,
    UserLogin,
    UserProfile,
    parse_payload,
)
from drivelink.services.accounts import AccountStore
from drivelink.services.relationships import RelationshipStore

logger = get_logger(__name__)


class AccountService:
    """
    Account operations for one session.

    Create one per logical task; the stores share the session, so a
    service instance must not be used from two tasks at once.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.accounts = AccountStore(db)
        self.relationships = RelationshipStore(db)

    # ========================================
    # Registration & Login
    # ========================================

    async def register(self, data: Any) -> AuthResult:
        """Create the account and issue its first token."""
        user = await self.accounts.create_user(data)
        return AuthResult(user=user, token=issue_user_token(user))

    async def login(self, data: Any) -> AuthResult:
        payload = parse_payload(UserLogin, data)
        user = await self.accounts.authenticate(payload.email, payload.password)
        return AuthResult(user=user, token=issue_user_token(user))

    # ========================================
    # Tokens
    # ========================================

    def verify_token(self, token: Optional[str]) -> TokenClaims:
        """
        Verify a token and return its claims.

        Accepts the raw token or an ``Authorization`` header value
        ("Bearer <token>").

        Raises:
            AuthError: no token given
            TokenExpiredError / InvalidTokenError: both are AuthError
        """
        if token and token.startswith("Bearer "):
            token = token[len("Bearer "):]
        if not token or not token.strip():
            raise AuthError("No token provided")
        return verify_user_token(token.strip())

    async def authenticate_token(self, token: Optional[str]) -> UserProfile:
        """
        Verify a token and load the account it names.

        Raises NotFoundError if the account was deleted after the token
        was issued.
        """
        claims = self.verify_token(token)
        return await self.accounts.get_by_id(claims.id)

    @staticmethod
    def require_car_owner(claims: TokenClaims) -> TokenClaims:
        if claims.role != UserRole.CAR_OWNER:
            raise RoleError("Access denied. Car owner role required.")
        return claims

    # ========================================
    # Profile & Preferences
    # ========================================

    async def get_profile(self, user_id: int) -> UserProfile:
        return await self.accounts.get_by_id(user_id)

    async def update_profile(self, user_id: int, data: Any) -> UserProfile:
        return await self.accounts.update_profile(user_id, data)

    async def get_preferences(self, user_id: int) -> PreferencesRecord:
        return await self.accounts.get_preferences(user_id)

    async def update_preferences(self, user_id: int, data: Any) -> PreferencesRecord:
        return await self.accounts.set_preferences(user_id, data)

    async def toggle_dark_mode(self, user_id: int) -> PreferencesRecord:
        return await self.accounts.toggle_dark_mode(user_id)

    # ========================================
    # Owners & Relatives
    # ========================================

    async def get_owner_with_relatives(self, owner_id: int) -> OwnerWithRelatives:
        """
        Owner profile plus the list of linked relatives.

        Raises:
            NotFoundError: unknown user
            RoleError: the user is not a car owner
        """
        owner = await self.accounts.get_by_id(owner_id)
        if owner.role != UserRole.CAR_OWNER:
            raise RoleError("User is not a car owner")

        relatives = await self.relationships.relatives_of(owner_id)
        return OwnerWithRelatives(**owner.model_dump(), relatives=relatives)

    async def get_owners_for_relative(self, relative_id: int) -> list[OwnerSummary]:
        """Owners a relative is linked to. NotFoundError for an unknown user."""
        await self.accounts.get_by_id(relative_id)
        return await self.relationships.owners_of(relative_id)

    async def add_relative(self, owner_id: int, relative_id: int) -> RelationshipRecord:
        return await self.relationships.add_edge(owner_id, relative_id)

    async def remove_relative(self, owner_id: int, relative_id: int) -> bool:
        return await self.relationships.remove_edge(owner_id, relative_id)
