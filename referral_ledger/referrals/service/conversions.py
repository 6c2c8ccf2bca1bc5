from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from referral_ledger.db.models.referral_clicks import ReferralClick
from referral_ledger.db.models.referral_codes import ReferralCode
from referral_ledger.db.models.referral_conversions import ReferralConversion
from referral_ledger.db.repo.referral_clicks_repo import ReferralClicksRepo
from referral_ledger.db.repo.referral_codes_repo import ReferralCodesRepo
from referral_ledger.db.repo.referral_conversions_repo import ReferralConversionsRepo
from referral_ledger.referrals.constants import REWARD_STATUS_PENDING
from referral_ledger.referrals.errors import ReferralConflictError, ReferralPolicyError

from .models import ReferralTerms
from .registry import resolve_active_code
from .rewards import compute_referred_discount, compute_referrer_reward, quantize_money

logger = structlog.get_logger(__name__)


async def _attribute_click(
    session: AsyncSession,
    *,
    code: ReferralCode,
    order_id: str,
    click_id: int | None,
) -> ReferralClick | None:
    click: ReferralClick | None = None
    if click_id is not None:
        click = await ReferralClicksRepo.get_unconverted_for_update(
            session,
            click_id=click_id,
            referral_code_id=code.id,
        )
        if click is None:
            logger.warning(
                "referral_click_attribution_fallback",
                referral_code=code.code,
                click_id=click_id,
                order_id=order_id,
            )
    if click is None:
        click = await ReferralClicksRepo.get_latest_unconverted_for_update(
            session,
            referral_code_id=code.id,
        )
    if click is None:
        return None

    click.converted = True
    click.conversion_order_id = order_id
    return click


async def create_referral_conversion(
    session: AsyncSession,
    *,
    referral_code: str,
    order_id: str,
    order_total: Decimal,
    terms: ReferralTerms,
    now_utc: datetime,
    referred_user_id: str | None = None,
    click_id: int | None = None,
) -> ReferralConversion:
    """Records a qualifying order against a code.

    The conversion row, the counter bump on the code and the click
    attribution share the caller's transaction. Reward amounts are computed
    from ``terms`` and stored on the row; later settings changes never touch
    them. Replaying an already-recorded ``order_id`` returns the stored row.
    """
    code = await resolve_active_code(session, code=referral_code)

    existing = await ReferralConversionsRepo.get_by_order_id(session, order_id=order_id)
    if existing is not None:
        if existing.referral_code_id != code.id:
            raise ReferralConflictError("Order is already attributed to another referral code")
        logger.info(
            "referral_conversion_replayed",
            order_id=order_id,
            referral_code=existing.referral_code,
        )
        return existing

    if Decimal(order_total) < terms.minimum_order_value:
        raise ReferralPolicyError(
            f"Order must be at least ${terms.minimum_order_value:.2f} to qualify for referral reward"
        )
    order_total = quantize_money(order_total)

    referrer_reward = compute_referrer_reward(order_total, terms)
    referred_discount = compute_referred_discount(order_total, terms)

    conversion = await ReferralConversionsRepo.create(
        session,
        conversion=ReferralConversion(
            referral_code_id=code.id,
            referral_code=code.code,
            referrer_user_id=code.user_id,
            referred_user_id=referred_user_id,
            order_id=order_id,
            order_total=order_total,
            referrer_reward=referrer_reward,
            referred_discount=referred_discount,
            referrer_reward_type=terms.reward_type,
            referred_discount_type=terms.referred_discount_type,
            reward_status=REWARD_STATUS_PENDING,
            converted_at=now_utc,
            processed_at=None,
        ),
    )
    await ReferralCodesRepo.add_conversion(
        session,
        code_id=code.id,
        order_total=order_total,
        reward=referrer_reward,
        now_utc=now_utc,
    )
    click = await _attribute_click(session, code=code, order_id=order_id, click_id=click_id)
    await session.flush()

    logger.info(
        "referral_conversion_recorded",
        referral_code=code.code,
        order_id=order_id,
        order_total=str(order_total),
        referrer_reward=str(referrer_reward),
        click_id=click.id if click is not None else None,
    )
    return conversion
