from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from referral_ledger.db.models.referral_clicks import ReferralClick


class ReferralClicksRepo:
    @staticmethod
    async def create(session: AsyncSession, *, click: ReferralClick) -> ReferralClick:
        session.add(click)
        await session.flush()
        return click

    @staticmethod
    async def get_unconverted_for_update(
        session: AsyncSession,
        *,
        click_id: int,
        referral_code_id: int,
    ) -> ReferralClick | None:
        stmt = (
            select(ReferralClick)
            .where(
                ReferralClick.id == click_id,
                ReferralClick.referral_code_id == referral_code_id,
                ReferralClick.converted.is_(False),
            )
            .with_for_update()
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_latest_unconverted_for_update(
        session: AsyncSession,
        *,
        referral_code_id: int,
    ) -> ReferralClick | None:
        stmt = (
            select(ReferralClick)
            .where(
                ReferralClick.referral_code_id == referral_code_id,
                ReferralClick.converted.is_(False),
            )
            .order_by(ReferralClick.clicked_at.desc(), ReferralClick.id.desc())
            .limit(1)
            .with_for_update(skip_locked=True)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()
