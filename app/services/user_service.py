"""User service for business logic."""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictException, NotFoundException, ValidationException
from app.core.one_time_code import CodePurpose, OneTimeCode, cleared_values
from app.core.permissions import Role
from app.core.security import get_password_hash, password_meets_policy
from app.models.users import users
from app.schemas.users import StaffCreate, UserPublic, UserUpdate

PASSWORD_POLICY_MESSAGE = (
    "The password must contain only letters and digits, at least one of each, "
    "and be at least 8 characters long"
)


def normalize_email(email: str) -> str:
    """Trim and lower-case an e-mail address."""
    return email.strip().lower()


def email_domain_allowed(email: str, domains: list[str]) -> bool:
    """Whether ``email`` ends in one of ``domains``."""
    return normalize_email(email).rsplit("@", 1)[-1] in domains


def to_public(account: dict[str, Any]) -> UserPublic:
    """Strip credentials and codes from an account row."""
    return UserPublic.model_validate(account)


class UserService:
    """Account store and admin-side user management."""

    def __init__(self, db: AsyncSession, logger: structlog.stdlib.BoundLogger | None = None):
        """Initialize service with database session."""
        self.db = db
        self.logger = logger or structlog.get_logger(__name__)

    async def get_user_by_id(self, user_id: UUID) -> dict | None:
        """Get user by internal ID."""
        result = await self.db.execute(select(users).where(users.c.id == user_id))
        user = result.mappings().first()
        return dict(user) if user else None

    async def get_user_by_email(self, email: str) -> dict | None:
        """Get user by e-mail, ignoring case and surrounding whitespace."""
        query = select(users).where(users.c.email == normalize_email(email))
        result = await self.db.execute(query)
        user = result.mappings().first()
        return dict(user) if user else None

    async def create_user(self, values: dict[str, Any]) -> dict:
        """
        Insert a new account.

        Raises:
            ConflictException: If the e-mail is already registered
        """
        now = datetime.now(UTC)
        values = {**values, "email": normalize_email(values["email"])}
        values.setdefault("created_at", now)
        values.setdefault("updated_at", now)

        try:
            result = await self.db.execute(insert(users).values(**values).returning(users))
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictException("The e-mail is already registered", field="email")

        user = result.mappings().first()
        if not user:
            raise ValueError("Failed to create user")
        return dict(user)

    async def update_fields(self, user_id: UUID, **values: Any) -> dict | None:
        """Apply ``values`` to one account in a single UPDATE."""
        values["updated_at"] = datetime.now(UTC)
        query = update(users).where(users.c.id == user_id).values(**values).returning(users)
        result = await self.db.execute(query)
        await self.db.commit()
        user = result.mappings().first()
        return dict(user) if user else None

    async def delete_user(self, user_id: UUID) -> bool:
        """Delete a user (hard delete)."""
        result = await self.db.execute(delete(users).where(users.c.id == user_id))
        await self.db.commit()
        return result.rowcount > 0  # type: ignore[attr-defined]

    async def store_code(self, user_id: UUID, purpose: CodePurpose, code: OneTimeCode) -> None:
        """Put ``code`` in the account's ``purpose`` slot, replacing any previous one."""
        await self.update_fields(user_id, **code.as_values(purpose))

    async def clear_code(self, user_id: UUID, purpose: CodePurpose, **changes: Any) -> dict | None:
        """Empty the ``purpose`` slot together with the state change it authorizes."""
        return await self.update_fields(user_id, **cleared_values(purpose), **changes)

    # Administration

    async def list_users(self, role: Role | None = None) -> list[dict]:
        """List accounts, newest first, optionally filtered by role."""
        query = select(users).order_by(users.c.created_at.desc())
        if role is not None:
            query = query.where(users.c.role == role.value)
        result = await self.db.execute(query)
        return [dict(row) for row in result.mappings().all()]

    async def list_users_by_role(self, role: Role) -> list[dict]:
        """List accounts holding ``role``, newest first."""
        return await self.list_users(role=role)

    async def create_staff(self, data: StaffCreate) -> dict:
        """
        Create a veterinarian or admin account.

        Staff accounts are created verified and active.

        Raises:
            ConflictException: If the e-mail is already registered
            ValidationException: If the password does not meet the policy
        """
        if await self.get_user_by_email(data.email):
            raise ConflictException("The e-mail is already registered", field="email")
        if not password_meets_policy(data.password):
            raise ValidationException("Validation error", errors=[PASSWORD_POLICY_MESSAGE])

        user = await self.create_user(
            {
                "email": data.email,
                "password_hash": get_password_hash(data.password),
                "first_name": data.first_name,
                "last_name": data.last_name,
                "age": data.age,
                "role": data.role.value,
                "is_active": True,
                "is_verified": True,
            }
        )
        self.logger.info("staff_user_created", user_id=str(user["id"]), role=user["role"])
        return user

    async def update_user(self, user_id: UUID, data: UserUpdate) -> dict:
        """
        Update an account on behalf of an admin.

        Raises:
            NotFoundException: If the account does not exist
            ConflictException: If the new e-mail belongs to another account
            ValidationException: If the new password does not meet the policy
        """
        user = await self.get_user_by_id(user_id)
        if not user:
            raise NotFoundException("User not found")

        update_data = data.model_dump(exclude_unset=True, exclude_none=True)

        if "email" in update_data:
            update_data["email"] = normalize_email(update_data["email"])
            if update_data["email"] != user["email"]:
                other = await self.get_user_by_email(update_data["email"])
                if other and other["id"] != user_id:
                    raise ConflictException(
                        "The e-mail is already used by another user", field="email"
                    )

        if "password" in update_data:
            password = update_data.pop("password")
            if not password_meets_policy(password):
                raise ValidationException("Validation error", errors=[PASSWORD_POLICY_MESSAGE])
            update_data["password_hash"] = get_password_hash(password)

        if "role" in update_data:
            update_data["role"] = update_data["role"].value

        if not update_data:
            return user

        updated = await self.update_fields(user_id, **update_data)
        self.logger.info("user_updated", user_id=str(user_id), fields=sorted(update_data))
        return updated  # type: ignore[return-value]

    async def toggle_status(self, user_id: UUID) -> dict:
        """
        Flip an account's active flag.

        Raises:
            NotFoundException: If the account does not exist
        """
        user = await self.get_user_by_id(user_id)
        if not user:
            raise NotFoundException("User not found")

        updated = await self.update_fields(user_id, is_active=not user["is_active"])
        self.logger.info(
            "user_status_changed",
            user_id=str(user_id),
            is_active=updated["is_active"],  # type: ignore[index]
        )
        return updated  # type: ignore[return-value]

    async def remove_user(self, user_id: UUID) -> None:
        """
        Delete an account on behalf of an admin.

        Raises:
            NotFoundException: If the account does not exist
        """
        if not await self.delete_user(user_id):
            raise NotFoundException("User not found")
        self.logger.info("user_deleted", user_id=str(user_id))
