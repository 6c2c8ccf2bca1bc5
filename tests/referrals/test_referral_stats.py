from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest

from referral_ledger.referrals.service import ReferralService
from tests.helpers import NOW_UTC, FakeIdentityLookup, make_terms


async def _seed_program(session_factory, identity) -> None:
    """Jane: 4 clicks, two orders (one old). Bob: no traffic."""
    async with session_factory.begin() as session:
        await ReferralService.create_referral_code(
            session, user_id="u-jane", identity=identity, now_utc=NOW_UTC, code="JANE01"
        )
        await ReferralService.create_referral_code(
            session, user_id="u-bob", identity=identity, now_utc=NOW_UTC, code="BOB001"
        )

    for minute in range(4):
        async with session_factory.begin() as session:
            await ReferralService.track_referral_click(
                session,
                referral_code="JANE01",
                now_utc=NOW_UTC - timedelta(days=41) + timedelta(minutes=minute),
            )

    async with session_factory.begin() as session:
        await ReferralService.create_referral_conversion(
            session,
            referral_code="JANE01",
            order_id="order-old",
            order_total=Decimal("120.00"),
            terms=make_terms(),
            now_utc=NOW_UTC - timedelta(days=40),
            referred_user_id="u-friend",
        )
    async with session_factory.begin() as session:
        await ReferralService.process_pending_rewards(
            session,
            now_utc=NOW_UTC - timedelta(days=20),
            terms=make_terms(),
        )
    async with session_factory.begin() as session:
        await ReferralService.create_referral_conversion(
            session,
            referral_code="JANE01",
            order_id="order-new",
            order_total=Decimal("80.00"),
            terms=make_terms(reward_type="percentage", reward_amount=Decimal("5")),
            now_utc=NOW_UTC - timedelta(days=1),
            referred_user_id="u-stranger",
        )


@pytest.mark.asyncio
async def test_user_stats_split_pending_and_available_rewards(session_factory, identity) -> None:
    await _seed_program(session_factory, identity)

    async with session_factory() as session:
        stats = await ReferralService.get_user_referral_stats(
            session,
            user_id="u-jane",
            identity=identity,
        )

    assert stats.referral_code == "JANE01"
    assert stats.total_clicks == 4
    assert stats.total_conversions == 2
    assert stats.conversion_rate == pytest.approx(50.0)
    assert stats.total_revenue == Decimal("200.00")
    assert stats.total_rewards_earned == Decimal("14.00")
    assert stats.pending_rewards == Decimal("4.00")
    assert stats.available_rewards == Decimal("10.00")

    assert [item.order_id for item in stats.recent_referrals] == ["order-new", "order-old"]
    new, old = stats.recent_referrals
    assert new.status == "pending"
    assert new.reward_amount == Decimal("4.00")
    assert new.referred_email == "Guest"
    assert old.status == "approved"
    assert old.referred_email == "friend@example.com"


@pytest.mark.asyncio
async def test_user_stats_respect_recent_limit(session_factory, identity) -> None:
    await _seed_program(session_factory, identity)

    async with session_factory() as session:
        stats = await ReferralService.get_user_referral_stats(
            session,
            user_id="u-jane",
            identity=identity,
            recent_limit=1,
        )

    assert [item.order_id for item in stats.recent_referrals] == ["order-new"]


@pytest.mark.asyncio
async def test_user_without_code_gets_empty_stats(session_factory, identity) -> None:
    async with session_factory() as session:
        stats = await ReferralService.get_user_referral_stats(
            session,
            user_id="u-nobody",
            identity=identity,
        )

    assert stats.referral_code == ""
    assert stats.total_clicks == 0
    assert stats.total_conversions == 0
    assert stats.conversion_rate == 0.0
    assert stats.pending_rewards == Decimal("0.00")
    assert stats.available_rewards == Decimal("0.00")
    assert stats.recent_referrals == []
    assert identity.batch_calls == []


@pytest.mark.asyncio
async def test_conversion_rate_is_zero_without_clicks(session_factory, identity) -> None:
    async with session_factory.begin() as session:
        await ReferralService.create_referral_code(
            session, user_id="u-bob", identity=identity, now_utc=NOW_UTC, code="BOB001"
        )

    async with session_factory() as session:
        stats = await ReferralService.get_user_referral_stats(
            session,
            user_id="u-bob",
            identity=identity,
        )

    assert stats.referral_code == "BOB001"
    assert stats.total_clicks == 0
    assert stats.conversion_rate == 0.0


@pytest.mark.asyncio
async def test_user_stats_fall_back_to_guest_when_identity_is_down(
    session_factory,
    identity,
) -> None:
    await _seed_program(session_factory, identity)

    async with session_factory() as session:
        stats = await ReferralService.get_user_referral_stats(
            session,
            user_id="u-jane",
            identity=FakeIdentityLookup(fail=True),
        )

    assert stats.total_conversions == 2
    assert {item.referred_email for item in stats.recent_referrals} == {"Guest"}


@pytest.mark.asyncio
async def test_admin_code_listing_enriches_owners(session_factory, identity) -> None:
    await _seed_program(session_factory, identity)
    async with session_factory.begin() as session:
        await ReferralService.create_referral_code(
            session,
            user_id="u-friend",
            identity=identity,
            now_utc=NOW_UTC,
            code="FRND01",
        )

    async with session_factory() as session:
        codes = await ReferralService.get_all_referral_codes(
            session,
            identity=FakeIdentityLookup(
                [record for record in identity.records.values() if record.user_id != "u-friend"]
            ),
        )

    by_code = {item.code: item for item in codes}
    assert set(by_code) == {"JANE01", "BOB001", "FRND01"}
    assert by_code["JANE01"].email == "jane@example.com"
    assert by_code["JANE01"].name == "Jane Doe"
    assert by_code["JANE01"].total_revenue == Decimal("200.00")
    assert by_code["BOB001"].name == "bob@example.com"
    assert by_code["FRND01"].email == "Unknown"
    assert by_code["FRND01"].name == "Unknown"


@pytest.mark.asyncio
async def test_admin_code_listing_pages_results(session_factory, identity) -> None:
    await _seed_program(session_factory, identity)

    async with session_factory() as session:
        first_page = await ReferralService.get_all_referral_codes(
            session, identity=identity, limit=1, offset=0
        )
        second_page = await ReferralService.get_all_referral_codes(
            session, identity=identity, limit=1, offset=1
        )

    assert len(first_page) == 1
    assert len(second_page) == 1
    assert first_page[0].code != second_page[0].code


@pytest.mark.asyncio
async def test_program_stats_totals_and_active_referrers(session_factory, identity) -> None:
    await _seed_program(session_factory, identity)

    async with session_factory() as session:
        stats = await ReferralService.get_referral_stats(
            session,
            identity=identity,
            now_utc=NOW_UTC,
        )

    assert stats.total_codes == 2
    assert stats.total_clicks == 4
    assert stats.total_conversions == 2
    assert stats.conversion_rate == pytest.approx(50.0)
    assert stats.total_revenue == Decimal("200.00")
    assert stats.total_rewards == Decimal("14.00")
    assert stats.pending_rewards == Decimal("4.00")
    assert stats.active_referrers == 1

    assert [item.order_id for item in stats.recent_conversions] == ["order-new", "order-old"]
    new, old = stats.recent_conversions
    assert new.referrer_email == "jane@example.com"
    assert new.referred_email is None
    assert old.referred_email == "friend@example.com"
    assert old.reward_status == "approved"
    assert old.processed_at is not None


@pytest.mark.asyncio
async def test_program_stats_active_window_excludes_old_conversions(
    session_factory,
    identity,
) -> None:
    await _seed_program(session_factory, identity)

    async with session_factory() as session:
        stats = await ReferralService.get_referral_stats(
            session,
            identity=identity,
            now_utc=NOW_UTC + timedelta(days=60),
        )

    assert stats.active_referrers == 0
    assert stats.total_conversions == 2


@pytest.mark.asyncio
async def test_program_stats_on_empty_ledger(session_factory, identity) -> None:
    async with session_factory() as session:
        stats = await ReferralService.get_referral_stats(
            session,
            identity=FakeIdentityLookup(fail=True),
            now_utc=NOW_UTC,
        )

    assert stats.total_codes == 0
    assert stats.conversion_rate == 0.0
    assert stats.total_revenue == Decimal("0.00")
    assert stats.pending_rewards == Decimal("0.00")
    assert stats.active_referrers == 0
    assert stats.recent_conversions == []
