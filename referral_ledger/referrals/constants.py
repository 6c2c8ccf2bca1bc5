from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

REWARD_STATUS_PENDING = "pending"
REWARD_STATUS_APPROVED = "approved"
REWARD_STATUS_PAID = "paid"
REWARD_STATUSES = frozenset({REWARD_STATUS_PENDING, REWARD_STATUS_APPROVED, REWARD_STATUS_PAID})

REWARD_TYPE_FIXED = "fixed"
REWARD_TYPE_PERCENTAGE = "percentage"
REWARD_TYPE_CREDIT = "credit"
REWARD_TYPES = frozenset({REWARD_TYPE_FIXED, REWARD_TYPE_PERCENTAGE, REWARD_TYPE_CREDIT})
DISCOUNT_TYPES = frozenset({REWARD_TYPE_FIXED, REWARD_TYPE_PERCENTAGE})

SHARE_TYPES = frozenset({"product", "referral", "order", "general"})
SHARE_PLATFORMS = frozenset({"facebook", "twitter", "linkedin", "whatsapp", "email", "copy"})

MONEY_QUANT = Decimal("0.01")
RECENT_REFERRALS_LIMIT = 10
ACTIVE_REFERRER_WINDOW = timedelta(days=30)
SHARE_ANALYTICS_DEFAULT_DAYS = 30

GUEST_EMAIL_PLACEHOLDER = "Guest"
UNKNOWN_USER_PLACEHOLDER = "Unknown"
INVALID_CODE_MESSAGE = "Invalid or inactive referral code"
