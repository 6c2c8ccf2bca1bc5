from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from referral_ledger.core.referral_codes import normalize_referral_code
from referral_ledger.db.models.referral_codes import ReferralCode


class ReferralCodesRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, code_id: int) -> ReferralCode | None:
        return await session.get(ReferralCode, code_id)

    @staticmethod
    async def get_by_user_id(session: AsyncSession, *, user_id: str) -> ReferralCode | None:
        stmt = select(ReferralCode).where(ReferralCode.user_id == user_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_code(session: AsyncSession, *, code: str) -> ReferralCode | None:
        stmt = select(ReferralCode).where(ReferralCode.code == normalize_referral_code(code))
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_codes_with_prefix(session: AsyncSession, *, prefix: str) -> list[str]:
        stmt = select(ReferralCode.code).where(ReferralCode.code.startswith(prefix, autoescape=True))
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def create(session: AsyncSession, *, referral_code: ReferralCode) -> ReferralCode:
        session.add(referral_code)
        await session.flush()
        return referral_code

    @staticmethod
    async def list_page(
        session: AsyncSession,
        *,
        limit: int = 100,
        offset: int = 0,
    ) -> list[ReferralCode]:
        stmt = (
            select(ReferralCode)
            .order_by(ReferralCode.created_at.desc(), ReferralCode.id.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def increment_clicks(
        session: AsyncSession,
        *,
        code_id: int,
        now_utc: datetime,
    ) -> None:
        stmt = (
            update(ReferralCode)
            .where(ReferralCode.id == code_id)
            .values(clicks=ReferralCode.clicks + 1, updated_at=now_utc)
            .execution_options(synchronize_session=False)
        )
        await session.execute(stmt)

    @staticmethod
    async def add_conversion(
        session: AsyncSession,
        *,
        code_id: int,
        order_total: Decimal,
        reward: Decimal,
        now_utc: datetime,
    ) -> None:
        stmt = (
            update(ReferralCode)
            .where(ReferralCode.id == code_id)
            .values(
                conversions=ReferralCode.conversions + 1,
                total_revenue=ReferralCode.total_revenue + order_total,
                total_rewards=ReferralCode.total_rewards + reward,
                updated_at=now_utc,
            )
            .execution_options(synchronize_session=False)
        )
        await session.execute(stmt)

    @staticmethod
    async def aggregate_totals(session: AsyncSession) -> dict[str, object]:
        stmt = select(
            func.count(ReferralCode.id),
            func.coalesce(func.sum(ReferralCode.clicks), 0),
            func.coalesce(func.sum(ReferralCode.conversions), 0),
            func.coalesce(func.sum(ReferralCode.total_revenue), 0),
            func.coalesce(func.sum(ReferralCode.total_rewards), 0),
        )
        row = (await session.execute(stmt)).one()
        return {
            "total_codes": int(row[0] or 0),
            "total_clicks": int(row[1] or 0),
            "total_conversions": int(row[2] or 0),
            "total_revenue": Decimal(str(row[3] or 0)).quantize(Decimal("0.01")),
            "total_rewards": Decimal(str(row[4] or 0)).quantize(Decimal("0.01")),
        }
