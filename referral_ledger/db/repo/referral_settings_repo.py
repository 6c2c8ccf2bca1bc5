from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from referral_ledger.db.models.referral_settings import DEFAULT_SETTINGS_ID, ReferralSettings


class ReferralSettingsRepo:
    @staticmethod
    async def get_default(session: AsyncSession) -> ReferralSettings | None:
        return await session.get(ReferralSettings, DEFAULT_SETTINGS_ID)

    @staticmethod
    async def get_default_for_update(session: AsyncSession) -> ReferralSettings | None:
        stmt = (
            select(ReferralSettings)
            .where(ReferralSettings.id == DEFAULT_SETTINGS_ID)
            .with_for_update()
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()
