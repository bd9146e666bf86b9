"""Authentication schemas."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.core.permissions import Role
from app.schemas.common import Envelope
from app.schemas.users import UserProfileBase, UserPublic

CODE_PATTERN = r"^[0-9]{6}$"


class LoginRequest(BaseModel):
    """Login request schema."""

    model_config = ConfigDict(str_strip_whitespace=True)

    email: EmailStr
    password: str = Field(..., min_length=1)


class RegisterRequest(UserProfileBase):
    """
    Public registration request.

    Unknown fields (including any ``role``) are ignored; public sign-ups are
    always patients.
    """

    password: str = Field(..., min_length=1)


class VerifyCodeRequest(BaseModel):
    """Account verification code submission."""

    model_config = ConfigDict(str_strip_whitespace=True)

    email: EmailStr
    code: str = Field(..., pattern=CODE_PATTERN)


class ResendCodeRequest(BaseModel):
    """Request for a fresh verification code."""

    model_config = ConfigDict(str_strip_whitespace=True)

    email: EmailStr


class TokenRefresh(BaseModel):
    """Token refresh request schema."""

    refresh_token: str


class LoginResponse(Envelope):
    """Login response with tokens and user info."""

    user: UserPublic
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class RegisterResponse(Envelope):
    """Registration response; the account still needs its code verified."""

    user: UserPublic
    requires_verification: bool = True


class VerifyCodeResponse(Envelope):
    """Successful account verification."""

    user: UserPublic


class RefreshResponse(Envelope):
    """Newly minted access token."""

    access_token: str
    token_type: str = "bearer"


class SessionUser(BaseModel):
    """Identity carried by a valid access token."""

    id: UUID
    email: str
    role: Role


class SessionResponse(Envelope):
    """Current session details."""

    user: SessionUser


class RecoveryRequest(BaseModel):
    """Password recovery request."""

    model_config = ConfigDict(str_strip_whitespace=True)

    email: EmailStr


class RecoveryVerifyRequest(BaseModel):
    """Recovery code submission."""

    model_config = ConfigDict(str_strip_whitespace=True)

    email: EmailStr
    code: str = Field(..., pattern=CODE_PATTERN)


class RecoveryVerifyResponse(Envelope):
    """Verified recovery code; ``reset_token`` authorizes the reset step."""

    reset_token: str


class PasswordResetRequest(BaseModel):
    """Final password recovery step."""

    model_config = ConfigDict(str_strip_whitespace=True)

    email: EmailStr
    code: str = Field(..., pattern=CODE_PATTERN)
    new_password: str = Field(..., min_length=1)
    reset_token: str
