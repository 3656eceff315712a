#!/usr/bin/env python3
"""
Owner / relative walkthrough against the configured database.

This script:
1. Creates the tables if they are missing
2. Registers a car owner (alice) and a relative (bob)
3. Logs alice in and verifies her token
4. Links bob to alice and reads the graph from both ends
5. Toggles alice's dark mode
6. Deletes both demo accounts again

Usage:
    DATABASE_URL=sqlite+aiosqlite:///./demo.db \\
    JWT_SECRET_KEY=change-me-change-me-change-me-change-me \\
    python scripts/demo_accounts.py
"""

import asyncio
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from drivelink.core.config import settings
from drivelink.core.errors import AccountError, DuplicateError
from drivelink.core.logging import setup_logging
from drivelink.db.session import Database
from drivelink.services.account_service import AccountService

ALICE = {
    "email": "alice@x.com",
    "name": "Alice",
    "password": "alice-demo-pass",
    "role": "car_owner",
    "car_name": "Tesla",
}
BOB = {
    "email": "bob@x.com",
    "name": "Bob",
    "password": "bob-demo-pass",
    "role": "relative",
}


async def register_or_login(service: AccountService, payload: dict):
    """Register, or log in if a previous run left the account behind."""
    try:
        return await service.register(payload)
    except DuplicateError:
        print(f"ℹ️  {payload['email']} already exists, logging in")
        return await service.login({"email": payload["email"], "password": payload["password"]})


async def run_demo(service: AccountService) -> None:
    print("\n📝 Registering accounts...")
    alice = await register_or_login(service, ALICE)
    bob = await register_or_login(service, BOB)
    print(f"✅ alice id={alice.user.id} role={alice.user.role}")
    print(f"✅ bob   id={bob.user.id} role={bob.user.role}")

    print("\n🔑 Logging in as alice...")
    login = await service.login({"email": ALICE["email"], "password": ALICE["password"]})
    claims = service.require_car_owner(service.verify_token(login.token))
    print(f"✅ token ok for {claims.email} ({claims.role})")

    print("\n🔗 Linking bob to alice...")
    try:
        await service.add_relative(claims.id, bob.user.id)
    except DuplicateError:
        print("ℹ️  link already present")

    owner = await service.get_owner_with_relatives(claims.id)
    print(f"✅ {owner.name} has relatives: {[r.email for r in owner.relatives]}")

    owners = await service.get_owners_for_relative(bob.user.id)
    print(f"✅ {BOB['name']} belongs to: {[o.email for o in owners]}")

    print("\n🌙 Toggling alice's dark mode...")
    before = await service.get_preferences(claims.id)
    after = await service.toggle_dark_mode(claims.id)
    print(f"✅ dark_mode {before.dark_mode} → {after.dark_mode}")

    print("\n🧹 Cleaning up demo accounts...")
    await service.accounts.delete_user(bob.user.id)
    await service.accounts.delete_user(alice.user.id)
    print("✅ Done")


async def main() -> int:
    setup_logging()

    async with Database(settings.DATABASE_URL) as database:
        if not await database.check_health():
            print("❌ Database is not reachable")
            return 1

        await database.create_tables()

        async with database.session() as session:
            try:
                await run_demo(AccountService(session))
            except AccountError as exc:
                print(f"❌ {exc.kind}: {exc.message}")
                return 1

    return 0


if __name__ == "__main__":
    exit_code = asyncio.run(main())
    sys.exit(exit_code)
