from referral_ledger.referrals.service import ReferralService

__all__ = ["ReferralService"]
