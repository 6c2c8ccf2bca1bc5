from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import case, distinct, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from referral_ledger.db.models.referral_conversions import ReferralConversion


def _as_decimal(value: object) -> Decimal:
    # SQLite hands sums back as floats.
    return Decimal(str(value or 0)).quantize(Decimal("0.01"))


class ReferralConversionsRepo:
    @staticmethod
    async def get_by_order_id(session: AsyncSession, *, order_id: str) -> ReferralConversion | None:
        stmt = select(ReferralConversion).where(ReferralConversion.order_id == order_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        conversion: ReferralConversion,
    ) -> ReferralConversion:
        session.add(conversion)
        await session.flush()
        return conversion

    @staticmethod
    async def list_recent_for_referrer(
        session: AsyncSession,
        *,
        referrer_user_id: str,
        limit: int = 10,
    ) -> list[ReferralConversion]:
        stmt = (
            select(ReferralConversion)
            .where(ReferralConversion.referrer_user_id == referrer_user_id)
            .order_by(ReferralConversion.converted_at.desc(), ReferralConversion.id.desc())
            .limit(limit)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def list_recent(session: AsyncSession, *, limit: int = 10) -> list[ReferralConversion]:
        stmt = (
            select(ReferralConversion)
            .order_by(ReferralConversion.converted_at.desc(), ReferralConversion.id.desc())
            .limit(limit)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def sum_rewards_by_status_for_referrer(
        session: AsyncSession,
        *,
        referrer_user_id: str,
    ) -> dict[str, Decimal]:
        stmt = select(
            func.sum(
                case(
                    (ReferralConversion.reward_status == "pending", ReferralConversion.referrer_reward),
                    else_=0,
                )
            ),
            func.sum(
                case(
                    (ReferralConversion.reward_status == "approved", ReferralConversion.referrer_reward),
                    else_=0,
                )
            ),
        ).where(ReferralConversion.referrer_user_id == referrer_user_id)
        row = (await session.execute(stmt)).one()
        return {"pending": _as_decimal(row[0]), "approved": _as_decimal(row[1])}

    @staticmethod
    async def sum_pending_rewards(session: AsyncSession) -> Decimal:
        stmt = select(func.sum(ReferralConversion.referrer_reward)).where(
            ReferralConversion.reward_status == "pending"
        )
        result = await session.execute(stmt)
        return _as_decimal(result.scalar_one_or_none())

    @staticmethod
    async def count_active_referrers_since(
        session: AsyncSession,
        *,
        since_utc: datetime,
    ) -> int:
        stmt = select(func.count(distinct(ReferralConversion.referrer_user_id))).where(
            ReferralConversion.converted_at > since_utc
        )
        result = await session.execute(stmt)
        return int(result.scalar_one() or 0)

    @staticmethod
    async def approve_pending_converted_before(
        session: AsyncSession,
        *,
        cutoff_utc: datetime,
        now_utc: datetime,
    ) -> int:
        stmt = (
            update(ReferralConversion)
            .where(
                ReferralConversion.reward_status == "pending",
                ReferralConversion.converted_at <= cutoff_utc,
            )
            .values(reward_status="approved", processed_at=now_utc)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return int(result.rowcount or 0)
