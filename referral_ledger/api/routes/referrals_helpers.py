from __future__ import annotations

from typing import Any, NoReturn

import structlog
from fastapi import HTTPException, Request

from referral_ledger.db.models.referral_codes import ReferralCode
from referral_ledger.db.models.referral_conversions import ReferralConversion
from referral_ledger.db.models.referral_settings import ReferralSettings
from referral_ledger.referrals.errors import (
    ReferralConflictError,
    ReferralError,
    ReferralInactiveError,
    ReferralNotFoundError,
    ReferralPolicyError,
)
from referral_ledger.services.internal_auth import extract_client_ip, internal_access_denial_reason

from .referrals_models import (
    ReferralCodeResponse,
    ReferralConversionResponse,
    ReferralSettingsResponse,
)

logger = structlog.get_logger(__name__)

_ERROR_STATUS: tuple[tuple[type[ReferralError], int, str], ...] = (
    (ReferralNotFoundError, 404, "E_REFERRAL_NOT_FOUND"),
    (ReferralInactiveError, 409, "E_REFERRAL_INACTIVE"),
    (ReferralPolicyError, 422, "E_REFERRAL_POLICY_VIOLATION"),
    (ReferralConflictError, 409, "E_REFERRAL_CONFLICT"),
)


def assert_internal_access(request: Request, *, settings: Any, log_event: str) -> None:
    trusted_proxies = getattr(settings, "internal_api_trusted_proxies", "")
    reason = internal_access_denial_reason(
        request,
        expected_token=settings.internal_api_token,
        allowlist=settings.internal_api_allowlist,
        trusted_proxies=trusted_proxies,
    )
    if reason is None:
        return

    logger.warning(
        log_event,
        reason=reason,
        path=request.url.path,
        client_ip=extract_client_ip(request, trusted_proxies=trusted_proxies),
    )
    raise HTTPException(status_code=403, detail={"code": "E_FORBIDDEN"})


def raise_referral_http_error(exc: ReferralError) -> NoReturn:
    for error_type, status_code, code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            raise HTTPException(
                status_code=status_code,
                detail={"code": code, "message": str(exc)},
            ) from exc
    raise exc


def as_code_response(referral_code: ReferralCode) -> ReferralCodeResponse:
    return ReferralCodeResponse(
        id=int(referral_code.id),
        user_id=referral_code.user_id,
        code=referral_code.code,
        clicks=int(referral_code.clicks),
        conversions=int(referral_code.conversions),
        total_revenue=float(referral_code.total_revenue),
        total_rewards=float(referral_code.total_rewards),
        active=bool(referral_code.active),
        created_at=referral_code.created_at,
        updated_at=referral_code.updated_at,
    )


def as_conversion_response(conversion: ReferralConversion) -> ReferralConversionResponse:
    return ReferralConversionResponse(
        id=int(conversion.id),
        referral_code=conversion.referral_code,
        referrer_user_id=conversion.referrer_user_id,
        referred_user_id=conversion.referred_user_id,
        order_id=conversion.order_id,
        order_total=float(conversion.order_total),
        referrer_reward=float(conversion.referrer_reward),
        referred_discount=float(conversion.referred_discount),
        reward_status=conversion.reward_status,
        converted_at=conversion.converted_at,
        processed_at=conversion.processed_at,
    )


def as_settings_response(settings_row: ReferralSettings) -> ReferralSettingsResponse:
    return ReferralSettingsResponse(
        enabled=bool(settings_row.enabled),
        reward_type=settings_row.reward_type,
        reward_amount=float(settings_row.reward_amount),
        referred_discount_type=settings_row.referred_discount_type,
        referred_discount_amount=float(settings_row.referred_discount_amount),
        minimum_order_value=float(settings_row.minimum_order_value),
        reward_delay_days=int(settings_row.reward_delay_days),
        terms_text=settings_row.terms_text,
        updated_at=settings_row.updated_at,
    )
