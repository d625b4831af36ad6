"""
Seed Admin User

Creates the first administrator account for the admissions portal.
Run this script once to set up the admin account.

Credentials are read from the environment:
    ADMIN_EMAIL, ADMIN_PASSWORD, ADMIN_FIRST_NAME (optional), ADMIN_LAST_NAME (optional)

Usage:
    cd apps/api
    ADMIN_EMAIL=admin@example.edu ADMIN_PASSWORD='...' python scripts/seed_admin.py
"""

import asyncio
import os
import sys

from app.core.database import async_session_maker, engine
from app.core.security import hash_password
from app.modules.users.models import UserRole
from app.modules.users.repository import UserRepository


async def seed_admin() -> int:
    """Create the admin user if it doesn't exist."""
    email = os.environ.get("ADMIN_EMAIL")
    password = os.environ.get("ADMIN_PASSWORD")
    if not email or not password:
        print("ADMIN_EMAIL and ADMIN_PASSWORD must be set")
        return 1

    first_name = os.environ.get("ADMIN_FIRST_NAME", "Portal")
    last_name = os.environ.get("ADMIN_LAST_NAME", "Admin")

    async with async_session_maker() as db:
        existing_user = await UserRepository.get_by_email(db, email)
        if existing_user:
            print(f"Admin already exists: {existing_user.email}")
            print(f"  ID: {existing_user.id}")
            print(f"  Role: {existing_user.role.value}")
            return 0

        admin_user = await UserRepository.create(
            db,
            email=email,
            password_hash=hash_password(password),
            first_name=first_name,
            last_name=last_name,
            role=UserRole.ADMIN,
        )
        await db.commit()
        await db.refresh(admin_user)

        print("Admin created successfully!")
        print(f"  Email: {admin_user.email}")
        print(f"  Name: {admin_user.full_name}")
        print(f"  ID: {admin_user.id}")

    await engine.dispose()
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(seed_admin()))
