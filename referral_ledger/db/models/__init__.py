from referral_ledger.db.models.base import Base
from referral_ledger.db.models.referral_clicks import ReferralClick
from referral_ledger.db.models.referral_codes import ReferralCode
from referral_ledger.db.models.referral_conversions import ReferralConversion
from referral_ledger.db.models.referral_settings import ReferralSettings
from referral_ledger.db.models.social_shares import SocialShare

__all__ = [
    "Base",
    "ReferralClick",
    "ReferralCode",
    "ReferralConversion",
    "ReferralSettings",
    "SocialShare",
]
