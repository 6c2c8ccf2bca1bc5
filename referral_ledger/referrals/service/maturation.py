from __future__ import annotations

from datetime import datetime, timedelta

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from referral_ledger.db.repo.referral_conversions_repo import ReferralConversionsRepo

from .models import ReferralTerms
from .settings_store import get_referral_terms

logger = structlog.get_logger(__name__)


async def process_pending_rewards(
    session: AsyncSession,
    *,
    now_utc: datetime,
    terms: ReferralTerms | None = None,
) -> int:
    """Approves every pending reward older than the return window.

    Safe to rerun: already approved rows no longer match the pending filter.
    """
    if terms is None:
        terms = await get_referral_terms(session)
    cutoff_utc = now_utc - timedelta(days=terms.reward_delay_days)

    approved = await ReferralConversionsRepo.approve_pending_converted_before(
        session,
        cutoff_utc=cutoff_utc,
        now_utc=now_utc,
    )
    logger.info(
        "referral_rewards_maturation_done",
        approved=approved,
        cutoff_utc=cutoff_utc.isoformat(),
        reward_delay_days=terms.reward_delay_days,
    )
    return approved
