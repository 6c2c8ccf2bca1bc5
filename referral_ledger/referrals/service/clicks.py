from __future__ import annotations

from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from referral_ledger.db.models.referral_clicks import ReferralClick
from referral_ledger.db.repo.referral_clicks_repo import ReferralClicksRepo
from referral_ledger.db.repo.referral_codes_repo import ReferralCodesRepo

from .registry import resolve_active_code

logger = structlog.get_logger(__name__)


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


async def track_referral_click(
    session: AsyncSession,
    *,
    referral_code: str,
    now_utc: datetime,
    ip_address: str | None = None,
    user_agent: str | None = None,
    referrer_url: str | None = None,
    landing_page: str | None = None,
) -> ReferralClick:
    # Every visit counts; repeat visits from one visitor are not deduplicated.
    code = await resolve_active_code(session, code=referral_code)

    click = await ReferralClicksRepo.create(
        session,
        click=ReferralClick(
            referral_code_id=code.id,
            referral_code=code.code,
            ip_address=_clean(ip_address),
            user_agent=_clean(user_agent),
            referrer_url=_clean(referrer_url),
            landing_page=_clean(landing_page),
            converted=False,
            conversion_order_id=None,
            clicked_at=now_utc,
        ),
    )
    await ReferralCodesRepo.increment_clicks(session, code_id=code.id, now_utc=now_utc)
    logger.debug("referral_click_tracked", referral_code=code.code, click_id=click.id)
    return click
