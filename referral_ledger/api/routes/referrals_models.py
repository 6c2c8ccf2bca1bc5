from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class ReferralCodeCreateRequest(BaseModel):
    user_id: str = Field(min_length=1, max_length=64)
    code: str | None = Field(default=None, min_length=1, max_length=32)


class ReferralCodeResponse(BaseModel):
    id: int = Field(gt=0)
    user_id: str
    code: str
    clicks: int = Field(ge=0)
    conversions: int = Field(ge=0)
    total_revenue: float = Field(ge=0.0)
    total_rewards: float = Field(ge=0.0)
    active: bool
    created_at: datetime
    updated_at: datetime


class ReferralClickRequest(BaseModel):
    referral_code: str = Field(min_length=1, max_length=32)
    user_agent: str | None = Field(default=None, max_length=512)
    referrer_url: str | None = Field(default=None, max_length=2048)
    landing_page: str | None = Field(default=None, max_length=2048)


class ReferralClickResponse(BaseModel):
    click_id: int = Field(gt=0)
    referral_code: str
    clicked_at: datetime


class ReferralConversionRequest(BaseModel):
    referral_code: str = Field(min_length=1, max_length=32)
    order_id: str = Field(min_length=1, max_length=64)
    order_total: Decimal = Field(ge=0, max_digits=12, decimal_places=2)
    referred_user_id: str | None = Field(default=None, min_length=1, max_length=64)
    click_id: int | None = Field(default=None, gt=0)


class ReferralConversionResponse(BaseModel):
    id: int = Field(gt=0)
    referral_code: str
    referrer_user_id: str
    referred_user_id: str | None = None
    order_id: str
    order_total: float = Field(ge=0.0)
    referrer_reward: float = Field(ge=0.0)
    referred_discount: float = Field(ge=0.0)
    reward_status: str
    converted_at: datetime
    processed_at: datetime | None = None


class RecentReferralResponse(BaseModel):
    order_id: str
    order_total: float
    reward_amount: float
    status: str
    converted_at: datetime
    referred_email: str


class UserReferralStatsResponse(BaseModel):
    referral_code: str
    total_clicks: int = Field(ge=0)
    total_conversions: int = Field(ge=0)
    conversion_rate: float = Field(ge=0.0)
    total_revenue: float = Field(ge=0.0)
    total_rewards_earned: float = Field(ge=0.0)
    pending_rewards: float = Field(ge=0.0)
    available_rewards: float = Field(ge=0.0)
    recent_referrals: list[RecentReferralResponse]


class SocialShareRequest(BaseModel):
    share_type: str = Field(min_length=1, max_length=16)
    share_platform: str = Field(min_length=1, max_length=16)
    shared_url: str = Field(min_length=1, max_length=2048)
    user_id: str | None = Field(default=None, max_length=64)
    product_id: str | None = Field(default=None, max_length=64)
    referral_code: str | None = Field(default=None, max_length=32)


class SocialShareResponse(BaseModel):
    id: int = Field(gt=0)
    share_type: str
    share_platform: str
    shared_at: datetime


class ReferralCodeOverviewResponse(ReferralCodeResponse):
    email: str
    name: str


class ReferralCodesPageResponse(BaseModel):
    limit: int = Field(ge=1)
    offset: int = Field(ge=0)
    codes: list[ReferralCodeOverviewResponse]


class AdminRecentConversionResponse(ReferralConversionResponse):
    referrer_email: str
    referred_email: str | None = None


class ReferralProgramStatsResponse(BaseModel):
    generated_at: datetime
    total_codes: int = Field(ge=0)
    total_clicks: int = Field(ge=0)
    total_conversions: int = Field(ge=0)
    conversion_rate: float = Field(ge=0.0)
    total_revenue: float = Field(ge=0.0)
    total_rewards: float = Field(ge=0.0)
    pending_rewards: float = Field(ge=0.0)
    active_referrers: int = Field(ge=0)
    recent_conversions: list[AdminRecentConversionResponse]


class ReferralCodeUpdateRequest(BaseModel):
    active: bool | None = None


class ReferralSettingsResponse(BaseModel):
    enabled: bool
    reward_type: str
    reward_amount: float = Field(ge=0.0)
    referred_discount_type: str
    referred_discount_amount: float = Field(ge=0.0)
    minimum_order_value: float = Field(ge=0.0)
    reward_delay_days: int = Field(ge=0)
    terms_text: str | None = None
    updated_at: datetime


class ReferralSettingsUpdateRequest(BaseModel):
    enabled: bool | None = None
    reward_type: str | None = Field(default=None, min_length=1, max_length=16)
    reward_amount: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    referred_discount_type: str | None = Field(default=None, min_length=1, max_length=16)
    referred_discount_amount: Decimal | None = Field(
        default=None,
        ge=0,
        max_digits=12,
        decimal_places=2,
    )
    minimum_order_value: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    reward_delay_days: int | None = Field(default=None, ge=0, le=365)
    terms_text: str | None = Field(default=None, max_length=10000)


class RewardMaturationResponse(BaseModel):
    processed_at: datetime
    approved: int = Field(ge=0)


class ShareAnalyticsRowResponse(BaseModel):
    share_platform: str
    share_type: str
    count: int = Field(ge=0)


class ShareAnalyticsResponse(BaseModel):
    generated_at: datetime
    days: int = Field(ge=1)
    rows: list[ShareAnalyticsRowResponse]
