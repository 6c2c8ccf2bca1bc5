from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from referral_ledger.referrals.constants import (
    MONEY_QUANT,
    REWARD_TYPE_FIXED,
    REWARD_TYPE_PERCENTAGE,
)

from .models import ReferralTerms


def quantize_money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def _percent_of(order_total: Decimal, percent: Decimal) -> Decimal:
    return quantize_money(order_total * percent / Decimal(100))


def compute_referrer_reward(order_total: Decimal, terms: ReferralTerms) -> Decimal:
    # 'fixed' and 'credit' both pay the flat amount; only the payout channel differs.
    if terms.reward_type == REWARD_TYPE_PERCENTAGE:
        return _percent_of(order_total, terms.reward_amount)
    return quantize_money(terms.reward_amount)


def compute_referred_discount(order_total: Decimal, terms: ReferralTerms) -> Decimal:
    if terms.referred_discount_type == REWARD_TYPE_FIXED:
        return quantize_money(terms.referred_discount_amount)
    return _percent_of(order_total, terms.referred_discount_amount)


def conversion_rate(*, clicks: int, conversions: int) -> float:
    if clicks <= 0:
        return 0.0
    return conversions / clicks * 100
