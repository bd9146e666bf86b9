"""FastAPI dependencies."""

from collections.abc import Callable
from typing import Annotated
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ForbiddenException, UnauthorizedException
from app.core.permissions import Capability, Principal, Role
from app.core.security import verify_access_token
from app.database import get_db
from app.services.email_service import EmailService

# Security
security = HTTPBearer(auto_error=False)


async def get_current_principal(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> Principal:
    """
    Build the caller's identity from a bearer access token.

    Args:
        credentials: Bearer token credentials

    Returns:
        Principal carried by the token

    Raises:
        UnauthorizedException: If the token is missing, invalid or expired
    """
    if credentials is None:
        raise UnauthorizedException("Access token required")

    payload = verify_access_token(credentials.credentials)
    if payload is None:
        raise UnauthorizedException("Invalid or expired token")

    try:
        return Principal(
            id=UUID(payload["sub"]),
            email=payload["email"],
            role=Role(payload["role"]),
        )
    except (KeyError, TypeError, ValueError):
        raise UnauthorizedException("Invalid or expired token")


def require_capability(capability: Capability) -> Callable:
    """
    Dependency factory guarding a route with one capability.

    Args:
        capability: Capability the caller's role must grant

    Returns:
        Dependency resolving to the authorized principal
    """

    async def dependency(
        principal: Annotated[Principal, Depends(get_current_principal)],
    ) -> Principal:
        if not principal.can(capability):
            raise ForbiddenException("You do not have permission to perform this action")
        return principal

    return dependency


def get_email_service() -> EmailService:
    """Provide the outbound e-mail sender."""
    return EmailService()


# Type aliases for dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
EmailSender = Annotated[EmailService, Depends(get_email_service)]
