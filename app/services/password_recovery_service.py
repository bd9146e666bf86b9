"""Password recovery through an e-mailed one-time code."""

from collections.abc import Callable
from datetime import datetime, timedelta

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import (
    BadRequestException,
    EmailDeliveryException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from app.core.one_time_code import CodePurpose, OneTimeCode, check_code, utc_now
from app.core.security import (
    get_password_hash,
    issue_password_reset_token,
    password_meets_policy,
    verify_password,
    verify_password_reset_token,
)
from app.services.email_service import EmailService
from app.services.user_service import (
    PASSWORD_POLICY_MESSAGE,
    UserService,
    email_domain_allowed,
    normalize_email,
)

INVALID_CODE = "Invalid or expired code"


class PasswordRecoveryService:
    """Request, verify and complete a password reset."""

    def __init__(
        self,
        db: AsyncSession,
        email_service: EmailService,
        clock: Callable[[], datetime] = utc_now,
        logger: structlog.stdlib.BoundLogger | None = None,
    ):
        """Initialize service with database session and e-mail sender."""
        self.users = UserService(db)
        self.email = email_service
        self.clock = clock
        self.logger = logger or structlog.get_logger(__name__)

    async def request_recovery(self, email: str) -> None:
        """
        E-mail a recovery code to an active account.

        Raises:
            BadRequestException: If the e-mail domain is not accepted
            NotFoundException: If no account uses the e-mail
            ForbiddenException: If the account is deactivated
            EmailDeliveryException: If the e-mail fails; the code is discarded
        """
        email = normalize_email(email)
        if not email_domain_allowed(email, settings.recovery_email_domains):
            raise BadRequestException(
                "Password recovery is only available for "
                + ", ".join(settings.recovery_email_domains)
                + " addresses",
                field="email",
            )

        user = await self.users.get_user_by_email(email)
        if not user:
            raise NotFoundException("No account is registered with this e-mail")

        if not user["is_active"]:
            raise ForbiddenException("This account is deactivated. Contact the clinic")

        code = OneTimeCode.issue(timedelta(minutes=settings.code_expire_minutes), self.clock())
        await self.users.store_code(user["id"], CodePurpose.RECOVERY, code)

        if not await self.email.send_recovery_code(user["email"], user["first_name"], code.value):
            await self.users.clear_code(user["id"], CodePurpose.RECOVERY)
            raise EmailDeliveryException()

        self.logger.info("recovery_code_sent", user_id=str(user["id"]))

    async def verify_recovery_code(self, email: str, code: str) -> str:
        """
        Check a recovery code without consuming it.

        Returns:
            Reset token bound to this e-mail and code

        Raises:
            BadRequestException: If the account is unknown, no code is pending or the code is wrong
            CodeExpiredException: If the code has expired
        """
        email = normalize_email(email)
        user = await self.users.get_user_by_email(email)
        if not user:
            raise BadRequestException(INVALID_CODE)

        check_code(
            user,
            CodePurpose.RECOVERY,
            code,
            self.clock(),
            no_code_message="No recovery code is pending for this account",
        )

        self.logger.info("recovery_code_verified", user_id=str(user["id"]))
        return issue_password_reset_token(email, code.strip())

    async def reset_password(
        self,
        email: str,
        code: str,
        new_password: str,
        reset_token: str,
    ) -> None:
        """
        Replace the password and consume the recovery code.

        The confirmation e-mail is best-effort.

        Raises:
            BadRequestException: If the reset token, account or code is invalid,
                or the new password equals the current one
            CodeExpiredException: If the code has expired
            ValidationException: If the new password does not meet the policy
        """
        email = normalize_email(email)
        code = code.strip()
        if not verify_password_reset_token(reset_token, email, code):
            raise BadRequestException("Invalid or expired reset token")

        user = await self.users.get_user_by_email(email)
        if not user:
            raise BadRequestException(INVALID_CODE)

        check_code(
            user,
            CodePurpose.RECOVERY,
            code,
            self.clock(),
            no_code_message="No recovery code is pending for this account",
        )

        if not password_meets_policy(new_password):
            raise ValidationException("Validation error", errors=[PASSWORD_POLICY_MESSAGE])

        if verify_password(new_password, user["password_hash"]):
            raise BadRequestException("The new password must be different from the current one")

        await self.users.clear_code(
            user["id"],
            CodePurpose.RECOVERY,
            password_hash=get_password_hash(new_password),
        )
        self.logger.info("password_reset", user_id=str(user["id"]))

        if not await self.email.send_password_changed(user["email"], user["first_name"]):
            self.logger.warning("password_changed_email_failed", user_id=str(user["id"]))
