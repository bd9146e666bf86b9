"""Authentication service for credentials, account verification and JWT."""

from collections.abc import Callable
from datetime import datetime, timedelta
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import (
    BadRequestException,
    ConflictException,
    EmailDeliveryException,
    NotFoundException,
    UnauthorizedException,
    ValidationException,
)
from app.core.one_time_code import CodePurpose, OneTimeCode, check_code, utc_now
from app.core.permissions import Role
from app.core.security import (
    TokenPair,
    get_password_hash,
    issue_access_token,
    issue_token_pair,
    password_meets_policy,
    verify_password,
    verify_refresh_token,
)
from app.schemas.auth import RegisterRequest
from app.services.email_service import EmailService
from app.services.user_service import (
    PASSWORD_POLICY_MESSAGE,
    UserService,
    email_domain_allowed,
    normalize_email,
)

INVALID_CREDENTIALS = "Invalid credentials"


class AuthService:
    """Authentication service for login, registration and token refresh."""

    def __init__(
        self,
        db: AsyncSession,
        email_service: EmailService,
        clock: Callable[[], datetime] = utc_now,
        logger: structlog.stdlib.BoundLogger | None = None,
    ):
        """Initialize auth service with database session and e-mail sender."""
        self.users = UserService(db)
        self.email = email_service
        self.clock = clock
        self.logger = logger or structlog.get_logger(__name__)

    def _code_ttl(self) -> timedelta:
        return timedelta(minutes=settings.code_expire_minutes)

    async def login(self, email: str, password: str) -> tuple[dict, TokenPair]:
        """
        Authenticate with e-mail and password.

        Checks run in order: the account exists, is active, is verified and
        the password matches. An unknown e-mail and a wrong password report
        the same message.

        Args:
            email: Account e-mail
            password: Plain text password

        Returns:
            Tuple of (user dict, token pair)

        Raises:
            UnauthorizedException: If any check fails
        """
        user = await self.users.get_user_by_email(email)
        if not user:
            self.logger.info("login_failed", reason="unknown_email")
            raise UnauthorizedException(INVALID_CREDENTIALS)

        if not user["is_active"]:
            self.logger.info("login_failed", reason="inactive", user_id=str(user["id"]))
            raise UnauthorizedException("Your account has been deactivated. Contact the clinic")

        if not user["is_verified"]:
            self.logger.info("login_failed", reason="unverified", user_id=str(user["id"]))
            raise UnauthorizedException(
                "Your account is not verified. Check your e-mail for the verification code"
            )

        if not verify_password(password, user["password_hash"]):
            self.logger.info("login_failed", reason="bad_password", user_id=str(user["id"]))
            raise UnauthorizedException(INVALID_CREDENTIALS)

        tokens = issue_token_pair({"sub": user["id"], "email": user["email"], "role": user["role"]})
        self.logger.info("login_succeeded", user_id=str(user["id"]), role=user["role"])
        return user, tokens

    async def register(self, data: RegisterRequest) -> dict:
        """
        Register a patient account and e-mail its verification code.

        If the code cannot be delivered the account is removed again.

        Args:
            data: Registration profile and password

        Returns:
            Created user dict

        Raises:
            BadRequestException: If the e-mail domain is not accepted
            ConflictException: If the e-mail is already registered
            ValidationException: If the password does not meet the policy
            EmailDeliveryException: If the verification e-mail fails
        """
        email = normalize_email(data.email)
        if not email_domain_allowed(email, settings.registration_email_domains):
            raise BadRequestException(
                "Only addresses from these domains are accepted: "
                + ", ".join(settings.registration_email_domains),
                field="email",
            )

        if await self.users.get_user_by_email(email):
            raise ConflictException("The e-mail is already registered", field="email")

        if not password_meets_policy(data.password):
            raise ValidationException("Validation error", errors=[PASSWORD_POLICY_MESSAGE])

        code = OneTimeCode.issue(self._code_ttl(), self.clock())
        user = await self.users.create_user(
            {
                "email": email,
                "password_hash": get_password_hash(data.password),
                "first_name": data.first_name,
                "last_name": data.last_name,
                "age": data.age,
                "role": Role.PATIENT.value,
                "is_active": True,
                "is_verified": False,
                **code.as_values(CodePurpose.VERIFICATION),
            }
        )

        sent = await self.email.send_verification_code(email, user["first_name"], code.value)
        if not sent:
            await self.users.delete_user(user["id"])
            self.logger.warning("registration_rolled_back", user_id=str(user["id"]))
            raise EmailDeliveryException(
                "The verification e-mail could not be sent. Please try registering again"
            )

        self.logger.info("user_registered", user_id=str(user["id"]))
        return user

    async def verify_code(self, email: str, code: str) -> dict:
        """
        Verify an account with its e-mailed code.

        Raises:
            NotFoundException: If the account does not exist
            BadRequestException: If already verified, no code is pending or the code is wrong
            CodeExpiredException: If the code has expired
        """
        user = await self.users.get_user_by_email(email)
        if not user:
            raise NotFoundException("User not found")

        if user["is_verified"]:
            raise BadRequestException("This account is already verified")

        check_code(
            user,
            CodePurpose.VERIFICATION,
            code,
            self.clock(),
            no_code_message="No verification code is pending for this account",
            mismatch_message="Incorrect verification code",
        )

        verified = await self.users.clear_code(
            user["id"], CodePurpose.VERIFICATION, is_verified=True
        )
        self.logger.info("user_verified", user_id=str(user["id"]))
        return verified  # type: ignore[return-value]

    async def resend_code(self, email: str) -> None:
        """
        Issue and e-mail a fresh verification code, replacing any pending one.

        Raises:
            NotFoundException: If the account does not exist
            BadRequestException: If the account is already verified
            EmailDeliveryException: If the e-mail fails
        """
        user = await self.users.get_user_by_email(email)
        if not user:
            raise NotFoundException("User not found")

        if user["is_verified"]:
            raise BadRequestException("This account is already verified")

        code = OneTimeCode.issue(self._code_ttl(), self.clock())
        await self.users.store_code(user["id"], CodePurpose.VERIFICATION, code)

        if not await self.email.send_verification_code(
            user["email"], user["first_name"], code.value
        ):
            raise EmailDeliveryException()

        self.logger.info("verification_code_resent", user_id=str(user["id"]))

    async def refresh_access_token(self, refresh_token: str) -> str:
        """
        Mint a new access token from a refresh token.

        The new token carries the account's current e-mail and role.

        Args:
            refresh_token: Refresh token

        Returns:
            New access token

        Raises:
            UnauthorizedException: If the token is invalid or the account is gone or inactive
        """
        payload = verify_refresh_token(refresh_token)
        if payload is None:
            raise UnauthorizedException("Invalid or expired refresh token")

        try:
            user_id = UUID(payload["sub"])
        except (KeyError, TypeError, ValueError):
            raise UnauthorizedException("Invalid or expired refresh token")

        user = await self.users.get_user_by_id(user_id)
        if not user or not user["is_active"]:
            raise UnauthorizedException("User not found or inactive")

        return issue_access_token({"sub": user["id"], "email": user["email"], "role": user["role"]})
