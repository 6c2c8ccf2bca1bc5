from referral_ledger.db.repo.referral_clicks_repo import ReferralClicksRepo
from referral_ledger.db.repo.referral_codes_repo import ReferralCodesRepo
from referral_ledger.db.repo.referral_conversions_repo import ReferralConversionsRepo
from referral_ledger.db.repo.referral_settings_repo import ReferralSettingsRepo
from referral_ledger.db.repo.social_shares_repo import SocialSharesRepo

__all__ = [
    "ReferralClicksRepo",
    "ReferralCodesRepo",
    "ReferralConversionsRepo",
    "ReferralSettingsRepo",
    "SocialSharesRepo",
]
