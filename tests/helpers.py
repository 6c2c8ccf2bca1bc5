from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone
from decimal import Decimal

from referral_ledger.referrals.service import ReferralTerms
from referral_ledger.services.identity import IdentityLookupError, IdentityRecord

NOW_UTC = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


class FakeIdentityLookup:
    def __init__(self, records: Iterable[IdentityRecord] = (), *, fail: bool = False) -> None:
        self.records = {record.user_id: record for record in records}
        self.fail = fail
        self.batch_calls: list[list[str]] = []

    async def lookup_user(self, user_id: str) -> IdentityRecord | None:
        if self.fail:
            raise IdentityLookupError("identity service down")
        return self.records.get(user_id)

    async def batch_get(self, user_ids: Iterable[str]) -> dict[str, IdentityRecord]:
        ids = list(user_ids)
        self.batch_calls.append(ids)
        if self.fail:
            raise IdentityLookupError("identity service down")
        return {user_id: self.records[user_id] for user_id in ids if user_id in self.records}


def make_terms(**overrides) -> ReferralTerms:
    values = {
        "reward_type": "credit",
        "reward_amount": Decimal("10.00"),
        "referred_discount_type": "percentage",
        "referred_discount_amount": Decimal("10.00"),
        "minimum_order_value": Decimal("50.00"),
        "reward_delay_days": 14,
        "enabled": True,
    }
    values.update(overrides)
    return ReferralTerms(**values)
