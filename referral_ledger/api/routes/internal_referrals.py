from __future__ import annotations

from datetime import datetime, timedelta, timezone

import structlog
from fastapi import APIRouter, Query, Request

from referral_ledger.core.config import get_settings
from referral_ledger.db.session import SessionLocal
from referral_ledger.referrals.constants import SHARE_ANALYTICS_DEFAULT_DAYS
from referral_ledger.referrals.errors import ReferralError
from referral_ledger.referrals.service import ReferralService
from referral_ledger.services.identity import get_identity_lookup

from .referrals_helpers import (
    as_code_response,
    as_settings_response,
    assert_internal_access,
    raise_referral_http_error,
)
from .referrals_models import (
    AdminRecentConversionResponse,
    ReferralCodeOverviewResponse,
    ReferralCodeResponse,
    ReferralCodesPageResponse,
    ReferralCodeUpdateRequest,
    ReferralProgramStatsResponse,
    ReferralSettingsResponse,
    ReferralSettingsUpdateRequest,
    RewardMaturationResponse,
    ShareAnalyticsResponse,
    ShareAnalyticsRowResponse,
)

router = APIRouter(prefix="/internal/referrals", tags=["internal", "referrals"])
logger = structlog.get_logger(__name__)


def _assert_internal_access(request: Request) -> None:
    assert_internal_access(
        request,
        settings=get_settings(),
        log_event="internal_referrals_auth_failed",
    )


@router.get("/codes", response_model=ReferralCodesPageResponse)
async def list_referral_codes(
    request: Request,
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
) -> ReferralCodesPageResponse:
    _assert_internal_access(request)
    async with SessionLocal.begin() as session:
        codes = await ReferralService.get_all_referral_codes(
            session,
            identity=get_identity_lookup(),
            limit=limit,
            offset=offset,
        )

    return ReferralCodesPageResponse(
        limit=limit,
        offset=offset,
        codes=[
            ReferralCodeOverviewResponse(
                id=item.id,
                user_id=item.user_id,
                code=item.code,
                clicks=item.clicks,
                conversions=item.conversions,
                total_revenue=float(item.total_revenue),
                total_rewards=float(item.total_rewards),
                active=item.active,
                created_at=item.created_at,
                updated_at=item.updated_at,
                email=item.email,
                name=item.name,
            )
            for item in codes
        ],
    )


@router.get("/stats", response_model=ReferralProgramStatsResponse)
async def get_referral_program_stats(request: Request) -> ReferralProgramStatsResponse:
    _assert_internal_access(request)
    settings = get_settings()
    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        stats = await ReferralService.get_referral_stats(
            session,
            identity=get_identity_lookup(),
            now_utc=now_utc,
            recent_limit=settings.referral_recent_limit,
            active_window=timedelta(days=settings.referral_active_window_days),
        )

    return ReferralProgramStatsResponse(
        generated_at=now_utc,
        total_codes=stats.total_codes,
        total_clicks=stats.total_clicks,
        total_conversions=stats.total_conversions,
        conversion_rate=stats.conversion_rate,
        total_revenue=float(stats.total_revenue),
        total_rewards=float(stats.total_rewards),
        pending_rewards=float(stats.pending_rewards),
        active_referrers=stats.active_referrers,
        recent_conversions=[
            AdminRecentConversionResponse(
                id=item.id,
                referral_code=item.referral_code,
                referrer_user_id=item.referrer_user_id,
                referred_user_id=item.referred_user_id,
                order_id=item.order_id,
                order_total=float(item.order_total),
                referrer_reward=float(item.referrer_reward),
                referred_discount=float(item.referred_discount),
                reward_status=item.reward_status,
                converted_at=item.converted_at,
                processed_at=item.processed_at,
                referrer_email=item.referrer_email,
                referred_email=item.referred_email,
            )
            for item in stats.recent_conversions
        ],
    )


@router.patch("/codes/{code_id}", response_model=ReferralCodeResponse)
async def update_referral_code(
    code_id: int,
    payload: ReferralCodeUpdateRequest,
    request: Request,
) -> ReferralCodeResponse:
    _assert_internal_access(request)
    now_utc = datetime.now(timezone.utc)
    try:
        async with SessionLocal.begin() as session:
            referral_code = await ReferralService.update_referral_code(
                session,
                code_id=code_id,
                now_utc=now_utc,
                active=payload.active,
            )
            response = as_code_response(referral_code)
    except ReferralError as exc:
        raise_referral_http_error(exc)
    return response


@router.get("/settings", response_model=ReferralSettingsResponse)
async def get_referral_settings(request: Request) -> ReferralSettingsResponse:
    _assert_internal_access(request)
    try:
        async with SessionLocal.begin() as session:
            settings_row = await ReferralService.get_referral_settings(session)
            response = as_settings_response(settings_row)
    except ReferralError as exc:
        raise_referral_http_error(exc)
    return response


@router.patch("/settings", response_model=ReferralSettingsResponse)
async def update_referral_settings(
    payload: ReferralSettingsUpdateRequest,
    request: Request,
) -> ReferralSettingsResponse:
    _assert_internal_access(request)
    now_utc = datetime.now(timezone.utc)
    changes = payload.model_dump(exclude_unset=True)
    try:
        async with SessionLocal.begin() as session:
            settings_row = await ReferralService.update_referral_settings(
                session,
                changes=changes,
                now_utc=now_utc,
            )
            response = as_settings_response(settings_row)
    except ReferralError as exc:
        raise_referral_http_error(exc)

    logger.info("internal_referral_settings_updated", fields=sorted(changes))
    return response


@router.post("/rewards/process", response_model=RewardMaturationResponse)
async def process_pending_rewards(request: Request) -> RewardMaturationResponse:
    _assert_internal_access(request)
    now_utc = datetime.now(timezone.utc)
    try:
        async with SessionLocal.begin() as session:
            approved = await ReferralService.process_pending_rewards(session, now_utc=now_utc)
    except ReferralError as exc:
        raise_referral_http_error(exc)
    return RewardMaturationResponse(processed_at=now_utc, approved=approved)


@router.get("/shares/analytics", response_model=ShareAnalyticsResponse)
async def get_social_share_analytics(
    request: Request,
    days: int = Query(default=SHARE_ANALYTICS_DEFAULT_DAYS, ge=1, le=365),
) -> ShareAnalyticsResponse:
    _assert_internal_access(request)
    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        rows = await ReferralService.get_social_share_analytics(
            session,
            now_utc=now_utc,
            days=days,
        )

    return ShareAnalyticsResponse(
        generated_at=now_utc,
        days=days,
        rows=[
            ShareAnalyticsRowResponse(
                share_platform=row.share_platform,
                share_type=row.share_type,
                count=row.count,
            )
            for row in rows
        ],
    )
