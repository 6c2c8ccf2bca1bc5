from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from decimal import Decimal

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from referral_ledger.db.models.referral_settings import ReferralSettings
from referral_ledger.db.repo.referral_settings_repo import ReferralSettingsRepo
from referral_ledger.referrals.constants import DISCOUNT_TYPES, REWARD_TYPES
from referral_ledger.referrals.errors import ReferralNotFoundError, ReferralPolicyError

from .models import ReferralTerms

logger = structlog.get_logger(__name__)

UPDATABLE_SETTINGS_FIELDS = (
    "enabled",
    "reward_type",
    "reward_amount",
    "referred_discount_type",
    "referred_discount_amount",
    "minimum_order_value",
    "reward_delay_days",
    "terms_text",
)
_MONEY_FIELDS = {"reward_amount", "referred_discount_amount", "minimum_order_value"}


def terms_from_settings(settings_row: ReferralSettings) -> ReferralTerms:
    return ReferralTerms(
        reward_type=settings_row.reward_type,
        reward_amount=Decimal(str(settings_row.reward_amount)),
        referred_discount_type=settings_row.referred_discount_type,
        referred_discount_amount=Decimal(str(settings_row.referred_discount_amount)),
        minimum_order_value=Decimal(str(settings_row.minimum_order_value)),
        reward_delay_days=int(settings_row.reward_delay_days),
        enabled=bool(settings_row.enabled),
    )


async def get_referral_settings(session: AsyncSession) -> ReferralSettings:
    settings_row = await ReferralSettingsRepo.get_default(session)
    if settings_row is None:
        raise ReferralNotFoundError("Referral settings not found")
    return settings_row


async def get_referral_terms(session: AsyncSession) -> ReferralTerms:
    return terms_from_settings(await get_referral_settings(session))


async def update_referral_settings(
    session: AsyncSession,
    *,
    changes: Mapping[str, object],
    now_utc: datetime,
) -> ReferralSettings:
    unknown_fields = set(changes) - set(UPDATABLE_SETTINGS_FIELDS)
    if unknown_fields:
        raise ValueError(f"unsupported referral settings fields: {sorted(unknown_fields)}")

    reward_type = changes.get("reward_type")
    if reward_type is not None and reward_type not in REWARD_TYPES:
        raise ReferralPolicyError(f"Unsupported reward type: {reward_type}")
    discount_type = changes.get("referred_discount_type")
    if discount_type is not None and discount_type not in DISCOUNT_TYPES:
        raise ReferralPolicyError(f"Unsupported referred discount type: {discount_type}")

    settings_row = await ReferralSettingsRepo.get_default_for_update(session)
    if settings_row is None:
        raise ReferralNotFoundError("Referral settings not found")

    applied: list[str] = []
    for field_name in UPDATABLE_SETTINGS_FIELDS:
        if field_name not in changes:
            continue
        value = changes[field_name]
        if value is None and field_name != "terms_text":
            continue
        if field_name in _MONEY_FIELDS:
            value = Decimal(str(value))
        setattr(settings_row, field_name, value)
        applied.append(field_name)

    settings_row.updated_at = now_utc
    await session.flush()
    logger.info("referral_settings_updated", fields=applied)
    return settings_row
