from referral_ledger.workers.tasks.referrals import run_referral_reward_maturation

__all__ = [
    "run_referral_reward_maturation",
]
