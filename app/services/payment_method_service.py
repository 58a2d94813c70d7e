"""
Payment method service.

Payout bank details: validated submission, OTP-confirmed changes and
admin review.
"""

import secrets
from datetime import timedelta

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.settings import settings
from app.models.base import utcnow
from app.models.payment_method import AffiliatePaymentMethod, PaymentMethodOtp
from app.repositories.payment_method_repository import (
    PaymentMethodOtpRepository,
    PaymentMethodRepository,
)
from app.services.exceptions import (
    AlreadyVerified,
    InvalidOtp,
    NotFound,
    ValidationFailure,
)
from app.services.notification_service import NotificationService
from app.services.user_service import UserService
from app.utils.bank_validators import (
    BankDetails,
    clean_account_number,
    clean_iban,
    validate_bank_details,
)

OTP_LENGTH = 6


def generate_otp_code() -> str:
    """Random 6-digit code (100000-999999)."""
    return str(100000 + secrets.randbelow(900000))


def payment_method_to_dict(
    payment_method: AffiliatePaymentMethod, masked: bool = True
) -> dict:
    """Presentation view of a payout profile."""
    return {
        "id": payment_method.id,
        "affiliate_id": payment_method.affiliate_id,
        "bank_name": payment_method.bank_name,
        "account_number": (
            payment_method.masked_account_number
            if masked
            else payment_method.account_number
        ),
        "account_holder_name": payment_method.account_holder_name,
        "iban": payment_method.iban,
        "swift_code": payment_method.swift_code,
        "bank_address": payment_method.bank_address,
        "verified": payment_method.verified,
        "verification_notes": payment_method.verification_notes,
        "created_at": payment_method.created_at,
        "updated_at": payment_method.updated_at,
    }


class PaymentMethodService:
    """Payout profile management."""

    def __init__(
        self,
        session: AsyncSession,
        notification_service: NotificationService | None = None,
    ) -> None:
        """Initialize payment method service."""
        self.session = session
        self.payment_method_repo = PaymentMethodRepository(session)
        self.otp_repo = PaymentMethodOtpRepository(session)
        self.user_service = UserService(session)
        self.notification_service = notification_service or NotificationService(
            session
        )

    async def get_payment_method(self, affiliate_id: int) -> dict | None:
        """
        Get the affiliate's payout profile with the account number masked.

        Returns:
            Profile dict or None if none exists
        """
        payment_method = await self.payment_method_repo.get_by_affiliate(
            affiliate_id
        )
        if payment_method is None:
            return None
        return payment_method_to_dict(payment_method)

    async def request_update_otp(self, affiliate_id: int) -> dict:
        """
        Issue a new OTP for changing payout details and e-mail it.

        Earlier unused codes are invalidated. The code is stored before
        delivery is attempted; a failed e-mail is queued for retry.

        Args:
            affiliate_id: Affiliate user ID

        Returns:
            {"expires_at": datetime, "delivered": bool}

        Raises:
            NotFound: If the affiliate has no e-mail or no payment method
            InvalidRole: If the user is not an affiliate
        """
        user = await self.user_service.get_affiliate(affiliate_id)
        if not user.email:
            raise NotFound(
                "Affiliate user or email not found",
                {"affiliate_id": affiliate_id},
            )

        if not await self.payment_method_repo.get_by_affiliate(affiliate_id):
            raise NotFound(
                "Payment method not found. Please add a payment method first.",
                {"affiliate_id": affiliate_id},
            )

        try:
            invalidated = await self.otp_repo.invalidate_open(affiliate_id)
            code = generate_otp_code()
            expires_at = utcnow() + timedelta(
                minutes=settings.otp_expiry_minutes
            )
            await self.otp_repo.create(
                affiliate_id=affiliate_id,
                code=code,
                expires_at=expires_at,
                verified=False,
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        logger.info(
            "Payment method OTP issued",
            extra={"affiliate_id": affiliate_id, "invalidated": invalidated},
        )

        delivered = await self.notification_service.send_payment_method_otp(
            user, code, settings.otp_expiry_minutes
        )
        return {"expires_at": expires_at, "delivered": delivered}

    async def _consume_otp(
        self, affiliate_id: int, code: str
    ) -> PaymentMethodOtp:
        """
        Check and consume the affiliate's newest unused OTP.

        A wrong code is counted and committed at once; after
        settings.otp_max_attempts wrong codes the OTP is invalidated.
        A match is flushed but not committed.

        Raises:
            InvalidOtp: If there is no code, it expired, or it does not match
        """
        otp = await self.otp_repo.get_latest_open(affiliate_id)
        if otp is None:
            raise InvalidOtp("No OTP code found. Please request a new OTP code.")
        if otp.is_expired():
            raise InvalidOtp("OTP code has expired. Please request a new one.")
        if not secrets.compare_digest(otp.code, (code or "").strip()):
            otp.failed_attempts = (otp.failed_attempts or 0) + 1
            exhausted = otp.failed_attempts >= settings.otp_max_attempts
            if exhausted:
                otp.verified = True
            await self.session.commit()

            if exhausted:
                logger.warning(
                    "OTP invalidated after too many wrong codes",
                    extra={"affiliate_id": affiliate_id},
                )
                raise InvalidOtp(
                    "Too many invalid attempts. Please request a new OTP code."
                )
            raise InvalidOtp("Invalid OTP code.")

        otp.verified = True
        await self.session.flush()
        return otp

    async def verify_otp(self, affiliate_id: int, code: str) -> dict:
        """
        Confirm the affiliate's identity with an OTP.

        Does not verify the payment method itself; that stays an admin
        decision.

        Raises:
            InvalidOtp: If the code is missing, expired or wrong
        """
        await self._consume_otp(affiliate_id, code)
        await self.session.commit()

        logger.info(
            "Payment method OTP verified", extra={"affiliate_id": affiliate_id}
        )
        return {
            "success": True,
            "message": "User identity confirmed successfully. "
            "Payment method is pending admin verification.",
        }

    async def submit_payment_method(
        self,
        affiliate_id: int,
        details: BankDetails,
        otp_code: str | None = None,
    ) -> dict:
        """
        Create or update the affiliate's payout profile.

        The first profile needs no OTP. Changing an existing profile needs
        a valid OTP, which is consumed, and resets the profile to
        unverified.

        Args:
            affiliate_id: Affiliate user ID
            details: Submitted bank details
            otp_code: OTP from request_update_otp (updates only)

        Returns:
            Masked profile dict

        Raises:
            ValidationFailure: With every violated bank rule
            InvalidOtp: For an update without a valid OTP
        """
        await self.user_service.get_affiliate(affiliate_id)

        violations = validate_bank_details(details)
        if violations:
            raise ValidationFailure(violations)

        values = {
            "bank_name": details.bank_name.strip(),
            "account_number": clean_account_number(details.account_number),
            "account_holder_name": details.account_holder_name.strip(),
            "iban": clean_iban(details.iban) if details.iban else None,
            "swift_code": (
                details.swift_code.strip().upper() if details.swift_code else None
            ),
            "bank_address": details.bank_address or None,
        }

        try:
            payment_method = await self.payment_method_repo.get_by_affiliate(
                affiliate_id
            )
            if payment_method is None:
                payment_method = await self.payment_method_repo.create(
                    affiliate_id=affiliate_id, verified=False, **values
                )
                action = "created"
            else:
                if not otp_code:
                    raise InvalidOtp(
                        "OTP code is required to change the payment method."
                    )
                await self._consume_otp(affiliate_id, otp_code)
                for key, value in values.items():
                    setattr(payment_method, key, value)
                payment_method.verified = False
                payment_method.verification_notes = None
                action = "updated"

            await self.session.commit()
            await self.session.refresh(payment_method)
        except Exception:
            await self.session.rollback()
            raise

        logger.info(
            f"Payment method {action}",
            extra={"affiliate_id": affiliate_id, "bank_name": values["bank_name"]},
        )
        return payment_method_to_dict(payment_method)

    async def verify_payment_method(
        self, payment_method_id: int, notes: str | None = None
    ) -> dict:
        """
        Mark a payout profile as verified (admin).

        Raises:
            NotFound: If the profile does not exist
            AlreadyVerified: If it is already verified
        """
        payment_method = await self.payment_method_repo.get_by_id(
            payment_method_id
        )
        if payment_method is None:
            raise NotFound(
                "Payment method not found",
                {"payment_method_id": payment_method_id},
            )
        if payment_method.verified:
            raise AlreadyVerified(payment_method_id)

        payment_method.verified = True
        payment_method.verification_notes = notes or "Verified by admin"
        await self.session.commit()

        logger.info(
            "Payment method verified",
            extra={
                "payment_method_id": payment_method_id,
                "affiliate_id": payment_method.affiliate_id,
            },
        )
        return payment_method_to_dict(payment_method, masked=False)

    async def reject_payment_method(
        self, payment_method_id: int, notes: str
    ) -> dict:
        """
        Mark a payout profile as not verified with a reason (admin).

        Raises:
            NotFound: If the profile does not exist
        """
        payment_method = await self.payment_method_repo.get_by_id(
            payment_method_id
        )
        if payment_method is None:
            raise NotFound(
                "Payment method not found",
                {"payment_method_id": payment_method_id},
            )

        payment_method.verified = False
        payment_method.verification_notes = notes
        await self.session.commit()

        logger.info(
            "Payment method rejected",
            extra={
                "payment_method_id": payment_method_id,
                "affiliate_id": payment_method.affiliate_id,
            },
        )
        return payment_method_to_dict(payment_method, masked=False)
