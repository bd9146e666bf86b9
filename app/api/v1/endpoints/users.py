"""User administration endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, status

from app.core.permissions import Capability, Role
from app.dependencies import DatabaseSession, require_capability
from app.schemas.common import MessageResponse
from app.schemas.users import (
    StaffCreate,
    UserEnvelope,
    UserListResponse,
    UserStatusResponse,
    UserUpdate,
)
from app.services.user_service import UserService, to_public

router = APIRouter(
    prefix="/users",
    tags=["users"],
    dependencies=[Depends(require_capability(Capability.MANAGE_USERS))],
)


@router.get("", response_model=UserListResponse)
async def list_users(db: DatabaseSession):
    """List all accounts, newest first."""
    user_service = UserService(db)
    users = await user_service.list_users()
    return UserListResponse(
        message="Users retrieved",
        users=[to_public(user) for user in users],
        total=len(users),
    )


@router.get("/role/{role}", response_model=UserListResponse)
async def list_users_by_role(role: Role, db: DatabaseSession):
    """List accounts holding one role."""
    user_service = UserService(db)
    users = await user_service.list_users_by_role(role)
    return UserListResponse(
        message="Users retrieved",
        users=[to_public(user) for user in users],
        total=len(users),
    )


@router.post("", response_model=UserEnvelope, status_code=status.HTTP_201_CREATED)
async def create_staff_user(data: StaffCreate, db: DatabaseSession):
    """Create a veterinarian or admin account."""
    user_service = UserService(db)
    user = await user_service.create_staff(data)
    return UserEnvelope(message="User created", user=to_public(user))


@router.put("/{user_id}", response_model=UserEnvelope)
async def update_user(user_id: UUID, data: UserUpdate, db: DatabaseSession):
    """Update an account's profile, e-mail, password or role."""
    user_service = UserService(db)
    user = await user_service.update_user(user_id, data)
    return UserEnvelope(message="User updated", user=to_public(user))


@router.patch("/{user_id}/status", response_model=UserStatusResponse)
async def toggle_user_status(user_id: UUID, db: DatabaseSession):
    """Activate or deactivate an account."""
    user_service = UserService(db)
    user = await user_service.toggle_status(user_id)
    message = "User activated" if user["is_active"] else "User deactivated"
    return UserStatusResponse(message=message, is_active=user["is_active"])


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(user_id: UUID, db: DatabaseSession):
    """Delete an account."""
    user_service = UserService(db)
    await user_service.remove_user(user_id)
    return MessageResponse(message="User deleted")
