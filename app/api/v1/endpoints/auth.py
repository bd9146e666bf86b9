"""Authentication endpoints."""

from fastapi import APIRouter, status

from app.dependencies import CurrentPrincipal, DatabaseSession, EmailSender
from app.schemas.auth import (
    LoginRequest,
    LoginResponse,
    PasswordResetRequest,
    RecoveryRequest,
    RecoveryVerifyRequest,
    RecoveryVerifyResponse,
    RefreshResponse,
    RegisterRequest,
    RegisterResponse,
    ResendCodeRequest,
    SessionResponse,
    SessionUser,
    TokenRefresh,
    VerifyCodeRequest,
    VerifyCodeResponse,
)
from app.schemas.common import MessageResponse
from app.services.auth_service import AuthService
from app.services.password_recovery_service import PasswordRecoveryService
from app.services.user_service import to_public

router = APIRouter()


@router.post(
    "/login",
    response_model=LoginResponse,
    status_code=status.HTTP_200_OK,
    tags=["Authentication"],
    summary="Log in with e-mail and password",
)
async def login(
    request: LoginRequest,
    db: DatabaseSession,
    email_service: EmailSender,
) -> LoginResponse:
    """
    Authenticate a verified, active account.

    Args:
        request: E-mail and password
        db: Database session
        email_service: E-mail sender

    Returns:
        Access token, refresh token, and user information
    """
    auth_service = AuthService(db, email_service)
    user, tokens = await auth_service.login(request.email, request.password)

    return LoginResponse(
        message="Login successful",
        user=to_public(user),
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        token_type=tokens.token_type,
    )


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Authentication"],
    summary="Register a patient account",
)
async def register(
    request: RegisterRequest,
    db: DatabaseSession,
    email_service: EmailSender,
) -> RegisterResponse:
    """
    Create a patient account and e-mail its verification code.

    Args:
        request: Profile and password
        db: Database session
        email_service: E-mail sender

    Returns:
        Created account, pending verification
    """
    auth_service = AuthService(db, email_service)
    user = await auth_service.register(request)

    return RegisterResponse(
        message="Registration successful. Check your e-mail for the verification code",
        user=to_public(user),
    )


@router.post(
    "/verify-code",
    response_model=VerifyCodeResponse,
    status_code=status.HTTP_200_OK,
    tags=["Authentication"],
    summary="Verify an account",
)
async def verify_code(
    request: VerifyCodeRequest,
    db: DatabaseSession,
    email_service: EmailSender,
) -> VerifyCodeResponse:
    """Confirm an account with the code sent at registration."""
    auth_service = AuthService(db, email_service)
    user = await auth_service.verify_code(request.email, request.code)

    return VerifyCodeResponse(
        message="Account verified. You can now log in",
        user=to_public(user),
    )


@router.post(
    "/resend-code",
    response_model=MessageResponse,
    status_code=status.HTTP_200_OK,
    tags=["Authentication"],
    summary="Resend the verification code",
)
async def resend_code(
    request: ResendCodeRequest,
    db: DatabaseSession,
    email_service: EmailSender,
) -> MessageResponse:
    """Send a new verification code, replacing the pending one."""
    auth_service = AuthService(db, email_service)
    await auth_service.resend_code(request.email)

    return MessageResponse(message="A new verification code has been sent to your e-mail")


@router.post(
    "/refresh",
    response_model=RefreshResponse,
    status_code=status.HTTP_200_OK,
    tags=["Authentication"],
    summary="Refresh access token",
)
async def refresh_token(
    request: TokenRefresh,
    db: DatabaseSession,
    email_service: EmailSender,
) -> RefreshResponse:
    """
    Get a new access token using a refresh token.

    Args:
        request: Refresh token
        db: Database session
        email_service: E-mail sender

    Returns:
        New access token
    """
    auth_service = AuthService(db, email_service)
    access_token = await auth_service.refresh_access_token(request.refresh_token)

    return RefreshResponse(message="Token refreshed", access_token=access_token)


@router.post(
    "/logout",
    response_model=MessageResponse,
    status_code=status.HTTP_200_OK,
    tags=["Authentication"],
    summary="Log out",
)
async def logout() -> MessageResponse:
    """
    Acknowledge a logout.

    Tokens are stateless; the client discards them.
    """
    return MessageResponse(message="Logged out successfully")


@router.get(
    "/session",
    response_model=SessionResponse,
    status_code=status.HTTP_200_OK,
    tags=["Authentication"],
    summary="Current session",
)
async def session(principal: CurrentPrincipal) -> SessionResponse:
    """Return the identity carried by the access token."""
    return SessionResponse(
        message="Active session",
        user=SessionUser(id=principal.id, email=principal.email, role=principal.role),
    )


@router.post(
    "/password-recovery/request",
    response_model=MessageResponse,
    status_code=status.HTTP_200_OK,
    tags=["Password recovery"],
    summary="Request a recovery code",
)
async def request_password_recovery(
    request: RecoveryRequest,
    db: DatabaseSession,
    email_service: EmailSender,
) -> MessageResponse:
    """E-mail a password recovery code."""
    recovery_service = PasswordRecoveryService(db, email_service)
    await recovery_service.request_recovery(request.email)

    return MessageResponse(message="A recovery code has been sent to your e-mail")


@router.post(
    "/password-recovery/verify-code",
    response_model=RecoveryVerifyResponse,
    status_code=status.HTTP_200_OK,
    tags=["Password recovery"],
    summary="Verify a recovery code",
)
async def verify_recovery_code(
    request: RecoveryVerifyRequest,
    db: DatabaseSession,
    email_service: EmailSender,
) -> RecoveryVerifyResponse:
    """Check a recovery code and return the token for the reset step."""
    recovery_service = PasswordRecoveryService(db, email_service)
    reset_token = await recovery_service.verify_recovery_code(request.email, request.code)

    return RecoveryVerifyResponse(message="Code verified", reset_token=reset_token)


@router.post(
    "/password-recovery/reset",
    response_model=MessageResponse,
    status_code=status.HTTP_200_OK,
    tags=["Password recovery"],
    summary="Set a new password",
)
async def reset_password(
    request: PasswordResetRequest,
    db: DatabaseSession,
    email_service: EmailSender,
) -> MessageResponse:
    """Replace the password using a verified recovery code."""
    recovery_service = PasswordRecoveryService(db, email_service)
    await recovery_service.reset_password(
        request.email,
        request.code,
        request.new_password,
        request.reset_token,
    )

    return MessageResponse(message="Your password has been updated")
