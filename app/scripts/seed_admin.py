"""Seed script to create or update a superadmin user.

Usage:
    python -m app.scripts.seed_admin --email=admin@example.com --password=SecurePass123!

NEVER hardcode credentials in this file. Always pass via CLI arguments.
"""

import argparse
import asyncio
import sys

from app.core.config import settings
from app.core.database import create_engine, create_session_factory
from app.models.user import User, UserRole
from app.services.auth import get_user_by_email, hash_password


async def create_or_update_superadmin(email: str, password: str, first_name: str, last_name: str) -> None:
    """Create a new superadmin or promote an existing user.

    Args:
        email: Admin email address
        password: Admin password (will be hashed)
    """
    engine = create_engine(settings.DATABASE_URL)
    session_factory = create_session_factory(engine)
    try:
        async with session_factory() as db:
            user = await get_user_by_email(db, email)

            if user:
                print(f"User {email} already exists. Updating to superadmin role...")
                user.role = UserRole.SUPERADMIN
                user.is_active = True
                user.is_walk_in = False
                user.hashed_password = hash_password(password)
            else:
                print(f"Creating new superadmin user: {email}...")
                db.add(User(
                    email=email.lower(),
                    hashed_password=hash_password(password),
                    first_name=first_name,
                    last_name=last_name,
                    role=UserRole.SUPERADMIN,
                    is_active=True,
                ))
            await db.commit()
    finally:
        await engine.dispose()

    print("\nSuperadmin setup complete!")
    print(f"   Email: {email}")
    print("   Role: superadmin")


def main():
    """Parse CLI arguments and run the seed script."""
    parser = argparse.ArgumentParser(
        description="Create or update a superadmin user for the Pure Éclat API"
    )
    parser.add_argument("--email", required=True, help="Admin email address")
    parser.add_argument(
        "--password",
        required=True,
        help="Admin password (will be hashed before storing)"
    )
    parser.add_argument("--first-name", default="Super")
    parser.add_argument("--last-name", default="Admin")

    args = parser.parse_args()

    if "@" not in args.email or "." not in args.email:
        print("Error: Invalid email format.", file=sys.stderr)
        sys.exit(1)

    if len(args.password) < 8:
        print("Error: Password must be at least 8 characters.", file=sys.stderr)
        sys.exit(1)

    asyncio.run(create_or_update_superadmin(args.email, args.password, args.first_name, args.last_name))


if __name__ == "__main__":
    main()
