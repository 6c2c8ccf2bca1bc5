from __future__ import annotations

from .clicks import track_referral_click
from .conversions import create_referral_conversion
from .maturation import process_pending_rewards
from .models import (
    AdminRecentConversion,
    RecentReferral,
    ReferralCodeOverview,
    ReferralProgramStats,
    ReferralTerms,
    ShareAnalyticsRow,
    UserReferralStats,
)
from .registry import (
    create_referral_code,
    get_referral_code_by_code,
    get_referral_code_by_id,
    get_referral_code_by_user_id,
    resolve_active_code,
    update_referral_code,
)
from .rewards import compute_referred_discount, compute_referrer_reward, conversion_rate
from .settings_store import (
    get_referral_settings,
    get_referral_terms,
    terms_from_settings,
    update_referral_settings,
)
from .shares import get_social_share_analytics, track_social_share
from .stats import get_all_referral_codes, get_referral_stats, get_user_referral_stats


class ReferralService:
    create_referral_code = staticmethod(create_referral_code)
    get_referral_code_by_code = staticmethod(get_referral_code_by_code)
    get_referral_code_by_id = staticmethod(get_referral_code_by_id)
    get_referral_code_by_user_id = staticmethod(get_referral_code_by_user_id)
    update_referral_code = staticmethod(update_referral_code)
    resolve_active_code = staticmethod(resolve_active_code)
    track_referral_click = staticmethod(track_referral_click)
    create_referral_conversion = staticmethod(create_referral_conversion)
    compute_referrer_reward = staticmethod(compute_referrer_reward)
    compute_referred_discount = staticmethod(compute_referred_discount)
    conversion_rate = staticmethod(conversion_rate)
    get_user_referral_stats = staticmethod(get_user_referral_stats)
    get_all_referral_codes = staticmethod(get_all_referral_codes)
    get_referral_stats = staticmethod(get_referral_stats)
    process_pending_rewards = staticmethod(process_pending_rewards)
    get_referral_settings = staticmethod(get_referral_settings)
    get_referral_terms = staticmethod(get_referral_terms)
    terms_from_settings = staticmethod(terms_from_settings)
    update_referral_settings = staticmethod(update_referral_settings)
    track_social_share = staticmethod(track_social_share)
    get_social_share_analytics = staticmethod(get_social_share_analytics)


__all__ = [
    "AdminRecentConversion",
    "RecentReferral",
    "ReferralCodeOverview",
    "ReferralProgramStats",
    "ReferralService",
    "ReferralTerms",
    "ShareAnalyticsRow",
    "UserReferralStats",
]
