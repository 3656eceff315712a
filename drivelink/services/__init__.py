"""Account, relationship and orchestration services."""

from drivelink.services.account_service import AccountService
from drivelink.services.accounts import AccountStore
from drivelink.services.relationships import RelationshipStore

__all__ = [
    "AccountService",
    "AccountStore",
    "RelationshipStore",
]
