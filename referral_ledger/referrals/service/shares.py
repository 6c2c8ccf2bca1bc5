from __future__ import annotations

from datetime import datetime, timedelta

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from referral_ledger.core.referral_codes import normalize_referral_code
from referral_ledger.db.models.social_shares import SocialShare
from referral_ledger.db.repo.social_shares_repo import SocialSharesRepo
from referral_ledger.referrals.constants import (
    SHARE_ANALYTICS_DEFAULT_DAYS,
    SHARE_PLATFORMS,
    SHARE_TYPES,
)
from referral_ledger.referrals.errors import ReferralPolicyError

from .models import ShareAnalyticsRow

logger = structlog.get_logger(__name__)


async def track_social_share(
    session: AsyncSession,
    *,
    share_type: str,
    share_platform: str,
    shared_url: str,
    now_utc: datetime,
    user_id: str | None = None,
    product_id: str | None = None,
    referral_code: str | None = None,
    ip_address: str | None = None,
) -> SocialShare:
    if share_type not in SHARE_TYPES:
        raise ReferralPolicyError(f"Unsupported share type: {share_type}")
    if share_platform not in SHARE_PLATFORMS:
        raise ReferralPolicyError(f"Unsupported share platform: {share_platform}")
    if not shared_url or not shared_url.strip():
        raise ReferralPolicyError("Shared URL is required")

    share = await SocialSharesRepo.create(
        session,
        share=SocialShare(
            user_id=user_id,
            share_type=share_type,
            share_platform=share_platform,
            shared_url=shared_url.strip(),
            product_id=product_id,
            referral_code=normalize_referral_code(referral_code) if referral_code else None,
            ip_address=ip_address,
            shared_at=now_utc,
        ),
    )
    logger.debug(
        "social_share_tracked",
        share_type=share_type,
        share_platform=share_platform,
        referral_code=share.referral_code,
    )
    return share


async def get_social_share_analytics(
    session: AsyncSession,
    *,
    now_utc: datetime,
    days: int = SHARE_ANALYTICS_DEFAULT_DAYS,
) -> list[ShareAnalyticsRow]:
    rows = await SocialSharesRepo.count_by_platform_and_type_since(
        session,
        since_utc=now_utc - timedelta(days=max(1, days)),
    )
    return [
        ShareAnalyticsRow(
            share_platform=str(row["share_platform"]),
            share_type=str(row["share_type"]),
            count=int(row["count"]),
        )
        for row in rows
    ]
