from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, Index, Integer, Numeric, String, text
from sqlalchemy.orm import Mapped, mapped_column

from referral_ledger.db.models.base import Base, BigIntegerPK


class ReferralCode(Base):
    __tablename__ = "referral_codes"
    __table_args__ = (
        Index("idx_referral_codes_active", "active"),
        Index("idx_referral_codes_created_at", "created_at"),
    )

    id: Mapped[int] = mapped_column(BigIntegerPK, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    # Stored upper-cased; uniqueness is case-insensitive through normalization.
    code: Mapped[str] = mapped_column(String(16), unique=True, nullable=False)
    clicks: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    conversions: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    total_revenue: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, server_default=text("0")
    )
    total_rewards: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, server_default=text("0")
    )
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("true"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
