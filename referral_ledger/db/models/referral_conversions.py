from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Numeric, String, text
from sqlalchemy.orm import Mapped, mapped_column

from referral_ledger.db.models.base import Base, BigIntegerPK


class ReferralConversion(Base):
    __tablename__ = "referral_conversions"
    __table_args__ = (
        CheckConstraint(
            "reward_status IN ('pending','approved','paid')",
            name="ck_referral_conversions_reward_status",
        ),
        CheckConstraint("order_total >= 0", name="ck_referral_conversions_order_total"),
        Index("idx_referral_conversions_code_id", "referral_code_id"),
        Index("idx_referral_conversions_referrer", "referrer_user_id", "converted_at"),
        Index("idx_referral_conversions_status_converted", "reward_status", "converted_at"),
    )

    id: Mapped[int] = mapped_column(BigIntegerPK, primary_key=True, autoincrement=True)
    referral_code_id: Mapped[int] = mapped_column(
        BigIntegerPK, ForeignKey("referral_codes.id"), nullable=False
    )
    referral_code: Mapped[str] = mapped_column(String(16), nullable=False)
    referrer_user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    referred_user_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    order_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    order_total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    referrer_reward: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, server_default=text("0")
    )
    referred_discount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, server_default=text("0")
    )
    referrer_reward_type: Mapped[str] = mapped_column(String(16), nullable=False)
    referred_discount_type: Mapped[str] = mapped_column(String(16), nullable=False)
    reward_status: Mapped[str] = mapped_column(
        String(16), nullable=False, server_default=text("'pending'")
    )
    converted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
