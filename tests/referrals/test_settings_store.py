from __future__ import annotations

from decimal import Decimal

import pytest

from referral_ledger.referrals.errors import ReferralNotFoundError, ReferralPolicyError
from referral_ledger.referrals.service import ReferralService
from referral_ledger.referrals.service.settings_store import terms_from_settings
from tests.helpers import NOW_UTC


@pytest.mark.asyncio
async def test_settings_read_fails_when_row_is_missing(session_factory) -> None:
    async with session_factory() as session:
        with pytest.raises(ReferralNotFoundError):
            await ReferralService.get_referral_settings(session)


@pytest.mark.asyncio
async def test_terms_snapshot_matches_stored_row(session_factory, seeded_settings) -> None:
    async with session_factory() as session:
        terms = await ReferralService.get_referral_terms(session)

    assert terms.reward_type == "credit"
    assert terms.reward_amount == Decimal("10.00")
    assert terms.referred_discount_type == "percentage"
    assert terms.referred_discount_amount == Decimal("10.00")
    assert terms.minimum_order_value == Decimal("50.00")
    assert terms.reward_delay_days == 14
    assert terms.enabled is True


@pytest.mark.asyncio
async def test_sparse_update_touches_only_supplied_fields(session_factory, seeded_settings) -> None:
    async with session_factory.begin() as session:
        await ReferralService.update_referral_settings(
            session,
            changes={"reward_amount": 15, "reward_delay_days": 7},
            now_utc=NOW_UTC,
        )

    async with session_factory() as session:
        settings_row = await ReferralService.get_referral_settings(session)
        terms = terms_from_settings(settings_row)

    assert terms.reward_amount == Decimal("15.00")
    assert terms.reward_delay_days == 7
    assert terms.reward_type == "credit"
    assert terms.minimum_order_value == Decimal("50.00")
    assert settings_row.terms_text == "Refer a friend and get $10 credit."


@pytest.mark.asyncio
async def test_none_values_are_ignored_except_terms_text(session_factory, seeded_settings) -> None:
    async with session_factory.begin() as session:
        await ReferralService.update_referral_settings(
            session,
            changes={"enabled": None, "terms_text": None},
            now_utc=NOW_UTC,
        )

    async with session_factory() as session:
        settings_row = await ReferralService.get_referral_settings(session)

    assert settings_row.enabled is True
    assert settings_row.terms_text is None


@pytest.mark.asyncio
async def test_program_can_be_disabled(session_factory, seeded_settings) -> None:
    async with session_factory.begin() as session:
        await ReferralService.update_referral_settings(
            session,
            changes={"enabled": False},
            now_utc=NOW_UTC,
        )

    async with session_factory() as session:
        terms = await ReferralService.get_referral_terms(session)

    assert terms.enabled is False


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "changes",
    [
        {"reward_type": "points"},
        {"referred_discount_type": "credit"},
    ],
)
async def test_unsupported_reward_types_are_rejected(
    session_factory,
    seeded_settings,
    changes,
) -> None:
    async with session_factory.begin() as session:
        with pytest.raises(ReferralPolicyError):
            await ReferralService.update_referral_settings(
                session,
                changes=changes,
                now_utc=NOW_UTC,
            )


@pytest.mark.asyncio
async def test_unknown_fields_are_rejected(session_factory, seeded_settings) -> None:
    async with session_factory.begin() as session:
        with pytest.raises(ValueError, match="unsupported referral settings fields"):
            await ReferralService.update_referral_settings(
                session,
                changes={"id": 2},
                now_utc=NOW_UTC,
            )


@pytest.mark.asyncio
async def test_update_without_settings_row_fails(session_factory) -> None:
    async with session_factory.begin() as session:
        with pytest.raises(ReferralNotFoundError):
            await ReferralService.update_referral_settings(
                session,
                changes={"enabled": False},
                now_utc=NOW_UTC,
            )
