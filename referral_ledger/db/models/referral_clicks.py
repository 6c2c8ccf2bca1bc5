from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from referral_ledger.db.models.base import Base, BigIntegerPK


class ReferralClick(Base):
    __tablename__ = "referral_clicks"
    __table_args__ = (
        Index("idx_referral_clicks_code_id", "referral_code_id"),
        Index("idx_referral_clicks_code", "referral_code"),
        Index("idx_referral_clicks_unconverted", "referral_code_id", "converted", "clicked_at"),
    )

    id: Mapped[int] = mapped_column(BigIntegerPK, primary_key=True, autoincrement=True)
    referral_code_id: Mapped[int] = mapped_column(
        BigIntegerPK, ForeignKey("referral_codes.id"), nullable=False
    )
    referral_code: Mapped[str] = mapped_column(String(16), nullable=False)
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    referrer_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    landing_page: Mapped[str | None] = mapped_column(Text, nullable=True)
    converted: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("false"))
    conversion_order_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    clicked_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
