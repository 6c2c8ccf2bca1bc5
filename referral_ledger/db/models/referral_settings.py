from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, DateTime, Integer, Numeric, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from referral_ledger.db.models.base import Base

DEFAULT_SETTINGS_ID = "default"


class ReferralSettings(Base):
    __tablename__ = "referral_settings"
    __table_args__ = (
        CheckConstraint(
            "reward_type IN ('fixed','percentage','credit')",
            name="ck_referral_settings_reward_type",
        ),
        CheckConstraint(
            "referred_discount_type IN ('fixed','percentage')",
            name="ck_referral_settings_referred_discount_type",
        ),
        CheckConstraint("reward_delay_days >= 0", name="ck_referral_settings_reward_delay_days"),
    )

    id: Mapped[str] = mapped_column(String(16), primary_key=True)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("true"))
    reward_type: Mapped[str] = mapped_column(String(16), nullable=False)
    reward_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    referred_discount_type: Mapped[str] = mapped_column(String(16), nullable=False)
    referred_discount_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    minimum_order_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    reward_delay_days: Mapped[int] = mapped_column(Integer, nullable=False)
    terms_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
