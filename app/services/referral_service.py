"""
Referral service.

Issues affiliate referral codes, resolves them back to affiliates and
tracks link clicks.
"""

import secrets
import string
import time
from dataclasses import dataclass
from enum import StrEnum

from loguru import logger
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.settings import settings
from app.models.referral import AffiliateReferral
from app.models.user import User
from app.repositories.product_repository import ProductRepository
from app.repositories.referral_repository import (
    ReferralClickRepository,
    ReferralRepository,
)
from app.repositories.user_repository import UserRepository
from app.services.exceptions import GenerationExhausted
from app.services.user_service import UserService

CODE_SUFFIX_LENGTH = 8
CODE_ALPHABET = string.ascii_uppercase + string.digits
_BASE36_DIGITS = string.digits + string.ascii_uppercase


def to_base36(value: int) -> str:
    """Encode a non-negative integer in upper-case base 36."""
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def generate_referral_code(
    prefix: str | None = None, timestamp_ms: int | None = None
) -> str:
    """
    Build a referral code candidate.

    Format: prefix + base-36 millisecond timestamp + "-" + random suffix,
    e.g. AFF-LZ3K9Q2A-7KQ2M4XB. The suffix comes from the secrets module.

    Args:
        prefix: Code prefix (defaults to settings)
        timestamp_ms: Timestamp override for deterministic tests

    Returns:
        Candidate code (not yet checked for uniqueness)
    """
    prefix = settings.referral_code_prefix if prefix is None else prefix
    if timestamp_ms is None:
        timestamp_ms = time.time_ns() // 1_000_000
    suffix = "".join(
        secrets.choice(CODE_ALPHABET) for _ in range(CODE_SUFFIX_LENGTH)
    )
    return f"{prefix}{to_base36(timestamp_ms)}-{suffix}"


class MintOutcome(StrEnum):
    """Result tags of a minting attempt."""

    SUCCESS = "success"
    COLLISION = "collision"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class MintResult:
    """Tagged minting result; code is set only on SUCCESS."""

    outcome: MintOutcome
    code: str | None = None
    attempts: int = 1

    @property
    def ok(self) -> bool:
        return self.outcome == MintOutcome.SUCCESS


class ReferralService:
    """Referral code registry and click tracking."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize referral service."""
        self.session = session
        self.referral_repo = ReferralRepository(session)
        self.click_repo = ReferralClickRepository(session)
        self.product_repo = ProductRepository(session)
        self.user_repo = UserRepository(session)
        self.user_service = UserService(session)

    async def get_or_create_code(self, affiliate_id: int) -> str:
        """
        Get the affiliate's active referral code, minting one if needed.

        Args:
            affiliate_id: Affiliate user ID

        Returns:
            Active referral code (same value on every call)

        Raises:
            NotFound: If the user does not exist
            InvalidRole: If the user is not an affiliate
            GenerationExhausted: If every minting attempt collided
        """
        await self.user_service.get_affiliate(affiliate_id)

        existing = await self.referral_repo.get_active_by_affiliate(
            affiliate_id
        )
        if existing:
            return existing.referral_code

        result = await self.mint_code(affiliate_id)
        if not result.ok:
            raise GenerationExhausted(result.attempts)

        await self.session.commit()
        return result.code

    async def mint_code(
        self, affiliate_id: int, max_attempts: int | None = None
    ) -> MintResult:
        """
        Mint a new active code, retrying on collisions.

        Does not commit; the caller owns the transaction.

        Args:
            affiliate_id: Affiliate user ID
            max_attempts: Attempt budget (defaults to settings)

        Returns:
            SUCCESS with the code, or EXHAUSTED after max_attempts collisions
        """
        if max_attempts is None:
            max_attempts = settings.referral_code_max_attempts

        for attempt in range(1, max_attempts + 1):
            result = await self.try_mint(affiliate_id)
            if result.ok:
                return MintResult(MintOutcome.SUCCESS, result.code, attempt)

            logger.warning(
                "Referral code collision, retrying",
                extra={"affiliate_id": affiliate_id, "attempt": attempt},
            )

        logger.error(
            "Referral code generation exhausted",
            extra={"affiliate_id": affiliate_id, "attempts": max_attempts},
        )
        return MintResult(MintOutcome.EXHAUSTED, attempts=max_attempts)

    async def try_mint(self, affiliate_id: int) -> MintResult:
        """
        Make one attempt to insert a new active code.

        The insert runs in a savepoint. A unique violation is either a
        concurrent request that already created this affiliate's active
        code (its code is returned as SUCCESS) or a code collision.

        Args:
            affiliate_id: Affiliate user ID

        Returns:
            SUCCESS or COLLISION
        """
        candidate = generate_referral_code()
        try:
            async with self.session.begin_nested():
                self.session.add(
                    AffiliateReferral(
                        affiliate_id=affiliate_id,
                        referral_code=candidate,
                        is_active=True,
                    )
                )
                await self.session.flush()
        except IntegrityError:
            existing = await self.referral_repo.get_active_by_affiliate(
                affiliate_id
            )
            if existing:
                return MintResult(MintOutcome.SUCCESS, existing.referral_code)
            return MintResult(MintOutcome.COLLISION)

        logger.info(
            "Referral code created",
            extra={"affiliate_id": affiliate_id, "referral_code": candidate},
        )
        return MintResult(MintOutcome.SUCCESS, candidate)

    async def resolve_affiliate(self, referral_code: str) -> User | None:
        """
        Find the affiliate behind an active referral code.

        Args:
            referral_code: Code from a referral link

        Returns:
            Affiliate user or None for unknown/inactive codes
        """
        if not referral_code:
            return None
        referral = await self.referral_repo.get_active_by_code(referral_code)
        if referral is None:
            return None
        return await self.user_repo.get_by_id(referral.affiliate_id)

    async def record_click(
        self, referral_code: str, product_id: int | None = None
    ) -> bool:
        """
        Count a referral link click.

        Unknown or inactive codes are ignored. Database errors are logged
        and swallowed so a click never breaks the page that reported it.

        Args:
            referral_code: Code from the link
            product_id: Product page the link pointed to, if any

        Returns:
            True if the click was recorded
        """
        try:
            referral = await self.referral_repo.get_active_by_code(
                referral_code
            )
            if referral is None:
                logger.debug(
                    "Click for unknown referral code ignored",
                    extra={"referral_code": referral_code},
                )
                return False

            if product_id is not None and not await self.product_repo.exists(
                id=product_id
            ):
                logger.warning(
                    f"Unknown product {product_id} for referral click, "
                    "recording general click",
                    extra={"referral_code": referral_code},
                )
                product_id = None

            await self.referral_repo.increment_clicks(referral.id)
            await self.click_repo.create(
                affiliate_id=referral.affiliate_id,
                referral_code=referral_code,
                product_id=product_id,
            )
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(
                f"Failed to record referral click: {e}",
                extra={"referral_code": referral_code},
            )
            return False

        logger.debug(
            "Referral click recorded",
            extra={"referral_code": referral_code, "product_id": product_id},
        )
        return True

    async def product_clicks(self, affiliate_id: int) -> list[dict]:
        """
        Per-product click counts for an affiliate.

        Returns:
            [{"product_id": ..., "clicks": ...}], most clicked first
        """
        counts = await self.click_repo.product_click_counts(affiliate_id)
        return [
            {"product_id": product_id, "clicks": clicks}
            for product_id, clicks in counts
        ]

    @staticmethod
    def referral_link(referral_code: str) -> str:
        """Public link carrying a referral code."""
        return f"{settings.frontend_url.rstrip('/')}?ref={referral_code}"
