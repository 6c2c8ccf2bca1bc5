from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal


@dataclass(frozen=True, slots=True)
class ReferralTerms:
    """Program parameters captured from the settings row at one point in time."""

    reward_type: str
    reward_amount: Decimal
    referred_discount_type: str
    referred_discount_amount: Decimal
    minimum_order_value: Decimal
    reward_delay_days: int
    enabled: bool = True


@dataclass(frozen=True, slots=True)
class RecentReferral:
    order_id: str
    order_total: Decimal
    reward_amount: Decimal
    status: str
    converted_at: datetime
    referred_email: str


@dataclass(frozen=True, slots=True)
class UserReferralStats:
    referral_code: str
    total_clicks: int
    total_conversions: int
    conversion_rate: float
    total_revenue: Decimal
    total_rewards_earned: Decimal
    pending_rewards: Decimal
    available_rewards: Decimal
    recent_referrals: list[RecentReferral] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class ReferralCodeOverview:
    id: int
    user_id: str
    code: str
    clicks: int
    conversions: int
    total_revenue: Decimal
    total_rewards: Decimal
    active: bool
    created_at: datetime
    updated_at: datetime
    email: str
    name: str


@dataclass(frozen=True, slots=True)
class AdminRecentConversion:
    id: int
    referral_code: str
    referrer_user_id: str
    referred_user_id: str | None
    order_id: str
    order_total: Decimal
    referrer_reward: Decimal
    referred_discount: Decimal
    reward_status: str
    converted_at: datetime
    processed_at: datetime | None
    referrer_email: str
    referred_email: str | None


@dataclass(frozen=True, slots=True)
class ReferralProgramStats:
    total_codes: int
    total_clicks: int
    total_conversions: int
    conversion_rate: float
    total_revenue: Decimal
    total_rewards: Decimal
    pending_rewards: Decimal
    active_referrers: int
    recent_conversions: list[AdminRecentConversion] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class ShareAnalyticsRow:
    share_platform: str
    share_type: str
    count: int
