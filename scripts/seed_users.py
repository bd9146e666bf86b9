"""Script to create the initial admin and veterinarian accounts."""

import asyncio
import os

from app.core.exceptions import AppException
from app.core.permissions import Role
from app.database import AsyncSessionLocal, engine
from app.schemas.users import StaffCreate
from app.services.user_service import UserService

INITIAL_USERS = [
    StaffCreate(
        first_name="Admin",
        last_name="Sistema",
        age=30,
        email=os.getenv("SEED_ADMIN_EMAIL", "admin@littlefalls.com"),
        password=os.getenv("SEED_ADMIN_PASSWORD", "admin123"),
        role=Role.ADMIN,
    ),
    StaffCreate(
        first_name="Carlos",
        last_name="Veterinario",
        age=35,
        email=os.getenv("SEED_VETERINARIAN_EMAIL", "veterinario@littlefalls.com"),
        password=os.getenv("SEED_VETERINARIAN_PASSWORD", "veterinario123"),
        role=Role.VETERINARIAN,
    ),
]


async def seed_users() -> None:
    """Create each initial account that does not exist yet."""
    async with AsyncSessionLocal() as session:
        user_service = UserService(session)

        for data in INITIAL_USERS:
            if await user_service.get_user_by_email(data.email):
                print(f"- {data.role.value}: {data.email} already exists, skipping")
                continue

            try:
                await user_service.create_staff(data)
            except AppException as e:
                print(f"✗ Could not create {data.email}: {e.message}")
                continue

            print(f"✓ {data.role.value} created: {data.email}")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed_users())
