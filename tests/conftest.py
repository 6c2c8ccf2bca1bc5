from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from collections.abc import AsyncIterator
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from referral_ledger.db.models import Base
from referral_ledger.db.models.referral_settings import DEFAULT_SETTINGS_ID, ReferralSettings
from referral_ledger.services.identity import IdentityRecord
from tests.helpers import NOW_UTC, FakeIdentityLookup

TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest_asyncio.fixture
async def session_factory() -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def seeded_settings(session_factory) -> ReferralSettings:
    async with session_factory.begin() as session:
        settings_row = ReferralSettings(
            id=DEFAULT_SETTINGS_ID,
            enabled=True,
            reward_type="credit",
            reward_amount=Decimal("10.00"),
            referred_discount_type="percentage",
            referred_discount_amount=Decimal("10.00"),
            minimum_order_value=Decimal("50.00"),
            reward_delay_days=14,
            terms_text="Refer a friend and get $10 credit.",
            updated_at=NOW_UTC,
        )
        session.add(settings_row)
    return settings_row


@pytest.fixture
def identity() -> FakeIdentityLookup:
    return FakeIdentityLookup(
        [
            IdentityRecord(user_id="u-jane", email="jane@example.com", name="Jane Doe"),
            IdentityRecord(user_id="u-bob", email="bob@example.com", name=None),
            IdentityRecord(user_id="u-friend", email="friend@example.com", name="Friend"),
        ]
    )
