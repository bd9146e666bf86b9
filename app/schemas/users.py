"""User schemas for request/response validation."""

import re
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from app.core.permissions import Role
from app.schemas.common import Envelope

NAME_PATTERN = re.compile(r"^[A-Za-zÁÉÍÓÚáéíóúÑñÜü\s]+$")


def validate_person_name(value: str) -> str:
    """Trimmed, letters and spaces only, 2-50 characters."""
    value = value.strip()
    if not 2 <= len(value) <= 50:
        raise ValueError("must be between 2 and 50 characters")
    if not NAME_PATTERN.match(value):
        raise ValueError("must contain only letters")
    return value


class UserProfileBase(BaseModel):
    """Profile fields captured when an account is created."""

    model_config = ConfigDict(str_strip_whitespace=True)

    first_name: str
    last_name: str
    age: int = Field(..., ge=18, le=120)
    email: EmailStr

    @field_validator("first_name", "last_name")
    @classmethod
    def validate_names(cls, v: str) -> str:
        """Validate name fields."""
        return validate_person_name(v)


class StaffCreate(UserProfileBase):
    """Admin request to create a veterinarian or admin account."""

    password: str = Field(..., min_length=1)
    role: Role

    @field_validator("role")
    @classmethod
    def validate_staff_role(cls, v: Role) -> Role:
        """Patients sign up through public registration only."""
        if v == Role.PATIENT:
            raise ValueError("must be veterinarian or admin")
        return v


class UserUpdate(BaseModel):
    """Admin patch of an existing account."""

    model_config = ConfigDict(str_strip_whitespace=True)

    first_name: str | None = None
    last_name: str | None = None
    age: int | None = Field(None, ge=18, le=120)
    email: EmailStr | None = None
    password: str | None = None
    role: Role | None = None

    @field_validator("first_name", "last_name")
    @classmethod
    def validate_names(cls, v: str | None) -> str | None:
        """Validate name fields when present."""
        return validate_person_name(v) if v is not None else v


class UserPublic(BaseModel):
    """Account as exposed over the API; never carries hashes or codes."""

    id: UUID
    email: str
    first_name: str
    last_name: str
    age: int
    role: Role
    is_active: bool
    is_verified: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserEnvelope(Envelope):
    """Single account response."""

    user: UserPublic


class UserListResponse(Envelope):
    """Account listing response."""

    users: list[UserPublic]
    total: int


class UserStatusResponse(Envelope):
    """Result of toggling an account's active flag."""

    is_active: bool
