from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from referral_ledger.db.models.base import Base, BigIntegerPK


class SocialShare(Base):
    __tablename__ = "social_shares"
    __table_args__ = (
        CheckConstraint(
            "share_type IN ('product','referral','order','general')",
            name="ck_social_shares_share_type",
        ),
        CheckConstraint(
            "share_platform IN ('facebook','twitter','linkedin','whatsapp','email','copy')",
            name="ck_social_shares_share_platform",
        ),
        Index("idx_social_shares_shared_at", "shared_at"),
        Index("idx_social_shares_user_id", "user_id"),
        Index("idx_social_shares_referral_code", "referral_code"),
    )

    id: Mapped[int] = mapped_column(BigIntegerPK, primary_key=True, autoincrement=True)
    user_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    share_type: Mapped[str] = mapped_column(String(16), nullable=False)
    share_platform: Mapped[str] = mapped_column(String(16), nullable=False)
    shared_url: Mapped[str] = mapped_column(Text, nullable=False)
    product_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    referral_code: Mapped[str | None] = mapped_column(String(16), nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    shared_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
