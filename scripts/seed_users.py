"""
Pulseboard - User Seed Script

Creates accounts for development. Passwords are prompted for, never
hard-coded.

Usage:
    python -m scripts.seed_users ops@example.com --role superadmin
    python -m scripts.seed_users viewer@example.com
"""

import argparse
import asyncio
import getpass
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from pulseboard.auth.models import Role
from pulseboard.auth.users import create_user, get_user_by_email
from pulseboard.config import settings
from pulseboard.database import get_engine, get_session_factory, init_db
from pulseboard.logging_config import setup_logging


async def seed_user(email: str, password: str, role: Role) -> bool:
    """Create one user unless the email is taken. Returns True if created."""
    engine = get_engine(settings.DATABASE_URL)
    await init_db(engine)
    session_factory = get_session_factory(engine)

    try:
        async with session_factory() as db:
            if await get_user_by_email(db, email):
                print(f"User {email} already exists.")
                return False

            user = await create_user(db, email, password, role=role, rounds=settings.BCRYPT_ROUNDS)
            print(f"Created user: {user.email} ({user.role.value})")
            return True
    finally:
        await engine.dispose()


def main():
    parser = argparse.ArgumentParser(description="Create a Pulseboard user")
    parser.add_argument("email")
    parser.add_argument("--role", choices=[r.value for r in Role], default=Role.USER.value)
    args = parser.parse_args()

    setup_logging("seed", settings.LOG_LEVEL)

    password = getpass.getpass("Password: ")
    if len(password) < 8:
        print("Password must be at least 8 characters")
        sys.exit(1)
    if password != getpass.getpass("Repeat password: "):
        print("Passwords do not match")
        sys.exit(1)

    created = asyncio.run(seed_user(args.email, password, Role(args.role)))
    sys.exit(0 if created else 2)


if __name__ == "__main__":
    main()
