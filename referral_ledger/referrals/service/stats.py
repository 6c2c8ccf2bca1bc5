from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta
from decimal import Decimal

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from referral_ledger.db.repo.referral_codes_repo import ReferralCodesRepo
from referral_ledger.db.repo.referral_conversions_repo import ReferralConversionsRepo
from referral_ledger.referrals.constants import (
    ACTIVE_REFERRER_WINDOW,
    GUEST_EMAIL_PLACEHOLDER,
    RECENT_REFERRALS_LIMIT,
    UNKNOWN_USER_PLACEHOLDER,
)
from referral_ledger.services.identity import IdentityLookup, IdentityLookupError, IdentityRecord

from .models import (
    AdminRecentConversion,
    RecentReferral,
    ReferralCodeOverview,
    ReferralProgramStats,
    UserReferralStats,
)
from .rewards import conversion_rate

logger = structlog.get_logger(__name__)


async def _safe_batch_get(
    identity: IdentityLookup,
    user_ids: Iterable[str | None],
) -> dict[str, IdentityRecord]:
    wanted = [user_id for user_id in user_ids if user_id]
    if not wanted:
        return {}
    try:
        return await identity.batch_get(wanted)
    except IdentityLookupError as exc:
        logger.warning("referral_identity_enrichment_failed", requested=len(wanted), error=str(exc))
        return {}


def _empty_user_stats() -> UserReferralStats:
    return UserReferralStats(
        referral_code="",
        total_clicks=0,
        total_conversions=0,
        conversion_rate=0.0,
        total_revenue=Decimal("0.00"),
        total_rewards_earned=Decimal("0.00"),
        pending_rewards=Decimal("0.00"),
        available_rewards=Decimal("0.00"),
        recent_referrals=[],
    )


async def get_user_referral_stats(
    session: AsyncSession,
    *,
    user_id: str,
    identity: IdentityLookup,
    recent_limit: int = RECENT_REFERRALS_LIMIT,
) -> UserReferralStats:
    code = await ReferralCodesRepo.get_by_user_id(session, user_id=user_id)
    if code is None:
        return _empty_user_stats()

    reward_sums = await ReferralConversionsRepo.sum_rewards_by_status_for_referrer(
        session,
        referrer_user_id=user_id,
    )
    recent = await ReferralConversionsRepo.list_recent_for_referrer(
        session,
        referrer_user_id=user_id,
        limit=recent_limit,
    )
    users = await _safe_batch_get(identity, (row.referred_user_id for row in recent))

    recent_referrals = []
    for row in recent:
        referred = users.get(row.referred_user_id) if row.referred_user_id else None
        recent_referrals.append(
            RecentReferral(
                order_id=row.order_id,
                order_total=Decimal(str(row.order_total)),
                reward_amount=Decimal(str(row.referrer_reward)),
                status=row.reward_status,
                converted_at=row.converted_at,
                referred_email=referred.email if referred is not None else GUEST_EMAIL_PLACEHOLDER,
            )
        )

    return UserReferralStats(
        referral_code=code.code,
        total_clicks=int(code.clicks),
        total_conversions=int(code.conversions),
        conversion_rate=conversion_rate(clicks=code.clicks, conversions=code.conversions),
        total_revenue=Decimal(str(code.total_revenue)),
        total_rewards_earned=Decimal(str(code.total_rewards)),
        pending_rewards=reward_sums["pending"],
        available_rewards=reward_sums["approved"],
        recent_referrals=recent_referrals,
    )


async def get_all_referral_codes(
    session: AsyncSession,
    *,
    identity: IdentityLookup,
    limit: int = 100,
    offset: int = 0,
) -> list[ReferralCodeOverview]:
    codes = await ReferralCodesRepo.list_page(session, limit=limit, offset=offset)
    users = await _safe_batch_get(identity, (code.user_id for code in codes))

    overviews = []
    for code in codes:
        owner = users.get(code.user_id)
        overviews.append(
            ReferralCodeOverview(
                id=code.id,
                user_id=code.user_id,
                code=code.code,
                clicks=int(code.clicks),
                conversions=int(code.conversions),
                total_revenue=Decimal(str(code.total_revenue)),
                total_rewards=Decimal(str(code.total_rewards)),
                active=bool(code.active),
                created_at=code.created_at,
                updated_at=code.updated_at,
                email=owner.email if owner is not None else UNKNOWN_USER_PLACEHOLDER,
                name=owner.display_name if owner is not None else UNKNOWN_USER_PLACEHOLDER,
            )
        )
    return overviews


async def get_referral_stats(
    session: AsyncSession,
    *,
    identity: IdentityLookup,
    now_utc: datetime,
    recent_limit: int = RECENT_REFERRALS_LIMIT,
    active_window: timedelta = ACTIVE_REFERRER_WINDOW,
) -> ReferralProgramStats:
    """Program-wide totals for the admin dashboard.

    Active referrers are distinct referrers with a conversion inside the
    trailing window ending at ``now_utc``.
    """
    totals = await ReferralCodesRepo.aggregate_totals(session)
    pending_rewards = await ReferralConversionsRepo.sum_pending_rewards(session)
    active_referrers = await ReferralConversionsRepo.count_active_referrers_since(
        session,
        since_utc=now_utc - active_window,
    )
    recent = await ReferralConversionsRepo.list_recent(session, limit=recent_limit)

    user_ids: set[str] = set()
    for row in recent:
        user_ids.add(row.referrer_user_id)
        if row.referred_user_id:
            user_ids.add(row.referred_user_id)
    users = await _safe_batch_get(identity, user_ids)

    recent_conversions = []
    for row in recent:
        referrer = users.get(row.referrer_user_id)
        referred = users.get(row.referred_user_id) if row.referred_user_id else None
        recent_conversions.append(
            AdminRecentConversion(
                id=row.id,
                referral_code=row.referral_code,
                referrer_user_id=row.referrer_user_id,
                referred_user_id=row.referred_user_id,
                order_id=row.order_id,
                order_total=Decimal(str(row.order_total)),
                referrer_reward=Decimal(str(row.referrer_reward)),
                referred_discount=Decimal(str(row.referred_discount)),
                reward_status=row.reward_status,
                converted_at=row.converted_at,
                processed_at=row.processed_at,
                referrer_email=referrer.email if referrer is not None else UNKNOWN_USER_PLACEHOLDER,
                referred_email=referred.email if referred is not None else None,
            )
        )

    total_clicks = int(totals["total_clicks"])
    total_conversions = int(totals["total_conversions"])
    return ReferralProgramStats(
        total_codes=int(totals["total_codes"]),
        total_clicks=total_clicks,
        total_conversions=total_conversions,
        conversion_rate=conversion_rate(clicks=total_clicks, conversions=total_conversions),
        total_revenue=totals["total_revenue"],
        total_rewards=totals["total_rewards"],
        pending_rewards=pending_rewards,
        active_referrers=active_referrers,
        recent_conversions=recent_conversions,
    )
