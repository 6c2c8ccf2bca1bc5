from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from referral_ledger.core.referral_codes import (
    REFERRAL_CODE_RE,
    ReferralCodeExhaustedError,
    build_code_prefix,
    generate_referral_code,
    normalize_referral_code,
)
from referral_ledger.db.models.referral_codes import ReferralCode
from referral_ledger.db.repo.referral_codes_repo import ReferralCodesRepo
from referral_ledger.referrals.constants import INVALID_CODE_MESSAGE
from referral_ledger.referrals.errors import (
    ReferralConflictError,
    ReferralInactiveError,
    ReferralNotFoundError,
    ReferralPolicyError,
)
from referral_ledger.services.identity import IdentityLookup

logger = structlog.get_logger(__name__)


async def create_referral_code(
    session: AsyncSession,
    *,
    user_id: str,
    identity: IdentityLookup,
    now_utc: datetime,
    code: str | None = None,
) -> ReferralCode:
    """Returns the user's code, issuing one on first request.

    The owner must exist in the identity store; a missing user aborts
    creation instead of leaving an orphaned code behind.
    """
    existing = await ReferralCodesRepo.get_by_user_id(session, user_id=user_id)
    if existing is not None:
        return existing

    user = await identity.lookup_user(user_id)
    if user is None:
        raise ReferralNotFoundError("User not found - cannot create referral code")

    if code is not None:
        new_code = normalize_referral_code(code)
        if not REFERRAL_CODE_RE.match(new_code):
            raise ReferralPolicyError("Referral code must be 3-16 letters or digits")
        if await ReferralCodesRepo.get_by_code(session, code=new_code) is not None:
            raise ReferralConflictError("Referral code already exists")
    else:
        taken_codes = await ReferralCodesRepo.list_codes_with_prefix(
            session,
            prefix=build_code_prefix(user.display_name),
        )
        try:
            new_code = generate_referral_code(user.display_name, taken_codes=taken_codes)
        except ReferralCodeExhaustedError as exc:
            raise ReferralConflictError("Could not generate a unique referral code") from exc

    referral_code = await ReferralCodesRepo.create(
        session,
        referral_code=ReferralCode(
            user_id=user_id,
            code=new_code,
            clicks=0,
            conversions=0,
            total_revenue=Decimal("0"),
            total_rewards=Decimal("0"),
            active=True,
            created_at=now_utc,
            updated_at=now_utc,
        ),
    )
    logger.info("referral_code_created", user_id=user_id, referral_code=new_code)
    return referral_code


async def get_referral_code_by_id(session: AsyncSession, *, code_id: int) -> ReferralCode | None:
    return await ReferralCodesRepo.get_by_id(session, code_id)


async def get_referral_code_by_code(session: AsyncSession, *, code: str) -> ReferralCode | None:
    if not code or not code.strip():
        return None
    return await ReferralCodesRepo.get_by_code(session, code=code)


async def get_referral_code_by_user_id(
    session: AsyncSession,
    *,
    user_id: str,
) -> ReferralCode | None:
    return await ReferralCodesRepo.get_by_user_id(session, user_id=user_id)


async def update_referral_code(
    session: AsyncSession,
    *,
    code_id: int,
    now_utc: datetime,
    active: bool | None = None,
) -> ReferralCode:
    referral_code = await get_referral_code_by_id(session, code_id=code_id)
    if referral_code is None:
        raise ReferralNotFoundError("Referral code not found")

    if active is not None and referral_code.active != active:
        referral_code.active = active
        logger.info(
            "referral_code_active_changed",
            referral_code_id=referral_code.id,
            active=active,
        )
    referral_code.updated_at = now_utc
    await session.flush()
    return referral_code


async def resolve_active_code(session: AsyncSession, *, code: str) -> ReferralCode:
    referral_code = await get_referral_code_by_code(session, code=code)
    if referral_code is None:
        raise ReferralNotFoundError(INVALID_CODE_MESSAGE)
    if not referral_code.active:
        raise ReferralInactiveError(INVALID_CODE_MESSAGE)
    return referral_code
