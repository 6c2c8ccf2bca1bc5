from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from referral_ledger.db.models.social_shares import SocialShare


class SocialSharesRepo:
    @staticmethod
    async def create(session: AsyncSession, *, share: SocialShare) -> SocialShare:
        session.add(share)
        await session.flush()
        return share

    @staticmethod
    async def count_by_platform_and_type_since(
        session: AsyncSession,
        *,
        since_utc: datetime,
    ) -> list[dict[str, object]]:
        share_count = func.count(SocialShare.id).label("share_count")
        stmt = (
            select(SocialShare.share_platform, SocialShare.share_type, share_count)
            .where(SocialShare.shared_at > since_utc)
            .group_by(SocialShare.share_platform, SocialShare.share_type)
            .order_by(share_count.desc(), SocialShare.share_platform.asc())
        )
        result = await session.execute(stmt)
        return [
            {
                "share_platform": str(platform),
                "share_type": str(share_type),
                "count": int(count),
            }
            for platform, share_type, count in result.all()
        ]
