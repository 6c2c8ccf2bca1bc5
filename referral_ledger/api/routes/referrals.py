from __future__ import annotations

from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, HTTPException, Request
from sqlalchemy.exc import IntegrityError

from referral_ledger.core.config import get_settings
from referral_ledger.db.session import SessionLocal
from referral_ledger.referrals.errors import ReferralError
from referral_ledger.referrals.service import ReferralService
from referral_ledger.services.identity import IdentityLookupError, get_identity_lookup
from referral_ledger.services.internal_auth import extract_client_ip

from .referrals_helpers import (
    as_code_response,
    as_conversion_response,
    assert_internal_access,
    raise_referral_http_error,
)
from .referrals_models import (
    RecentReferralResponse,
    ReferralClickRequest,
    ReferralClickResponse,
    ReferralCodeCreateRequest,
    ReferralCodeResponse,
    ReferralConversionRequest,
    ReferralConversionResponse,
    SocialShareRequest,
    SocialShareResponse,
    UserReferralStatsResponse,
)

router = APIRouter(prefix="/referrals", tags=["referrals"])
logger = structlog.get_logger(__name__)


def _assert_service_access(request: Request) -> None:
    # Storefront backend callers only.
    assert_internal_access(
        request,
        settings=get_settings(),
        log_event="referrals_service_auth_failed",
    )


def _client_ip(request: Request) -> str | None:
    settings = get_settings()
    return extract_client_ip(
        request,
        trusted_proxies=getattr(settings, "internal_api_trusted_proxies", ""),
    )


@router.post("/codes", response_model=ReferralCodeResponse)
async def create_referral_code(
    payload: ReferralCodeCreateRequest,
    request: Request,
) -> ReferralCodeResponse:
    _assert_service_access(request)
    now_utc = datetime.now(timezone.utc)
    try:
        async with SessionLocal.begin() as session:
            referral_code = await ReferralService.create_referral_code(
                session,
                user_id=payload.user_id,
                identity=get_identity_lookup(),
                now_utc=now_utc,
                code=payload.code,
            )
            response = as_code_response(referral_code)
    except ReferralError as exc:
        raise_referral_http_error(exc)
    except IdentityLookupError as exc:
        logger.warning("referral_code_identity_unavailable", user_id=payload.user_id)
        raise HTTPException(status_code=503, detail={"code": "E_IDENTITY_UNAVAILABLE"}) from exc
    except IntegrityError as exc:
        # Lost a race with a concurrent create for the same user or code.
        raise HTTPException(status_code=409, detail={"code": "E_REFERRAL_CONFLICT"}) from exc
    return response


@router.get("/codes/{code}", response_model=ReferralCodeResponse)
async def get_referral_code(code: str) -> ReferralCodeResponse:
    async with SessionLocal.begin() as session:
        referral_code = await ReferralService.get_referral_code_by_code(session, code=code)
        if referral_code is None:
            raise HTTPException(status_code=404, detail={"code": "E_REFERRAL_NOT_FOUND"})
        return as_code_response(referral_code)


@router.get("/users/{user_id}/code", response_model=ReferralCodeResponse)
async def get_user_referral_code(user_id: str) -> ReferralCodeResponse:
    async with SessionLocal.begin() as session:
        referral_code = await ReferralService.get_referral_code_by_user_id(session, user_id=user_id)
        if referral_code is None:
            raise HTTPException(status_code=404, detail={"code": "E_REFERRAL_NOT_FOUND"})
        return as_code_response(referral_code)


@router.post("/clicks", response_model=ReferralClickResponse)
async def track_referral_click(
    payload: ReferralClickRequest,
    request: Request,
) -> ReferralClickResponse:
    now_utc = datetime.now(timezone.utc)
    try:
        async with SessionLocal.begin() as session:
            click = await ReferralService.track_referral_click(
                session,
                referral_code=payload.referral_code,
                now_utc=now_utc,
                ip_address=_client_ip(request),
                user_agent=payload.user_agent or request.headers.get("User-Agent"),
                referrer_url=payload.referrer_url or request.headers.get("Referer"),
                landing_page=payload.landing_page,
            )
            response = ReferralClickResponse(
                click_id=int(click.id),
                referral_code=click.referral_code,
                clicked_at=click.clicked_at,
            )
    except ReferralError as exc:
        raise_referral_http_error(exc)
    return response


@router.post("/conversions", response_model=ReferralConversionResponse)
async def record_referral_conversion(
    payload: ReferralConversionRequest,
    request: Request,
) -> ReferralConversionResponse:
    _assert_service_access(request)
    now_utc = datetime.now(timezone.utc)
    try:
        async with SessionLocal.begin() as session:
            terms = await ReferralService.get_referral_terms(session)
            conversion = await ReferralService.create_referral_conversion(
                session,
                referral_code=payload.referral_code,
                order_id=payload.order_id,
                order_total=payload.order_total,
                terms=terms,
                now_utc=now_utc,
                referred_user_id=payload.referred_user_id,
                click_id=payload.click_id,
            )
            response = as_conversion_response(conversion)
    except ReferralError as exc:
        raise_referral_http_error(exc)
    except IntegrityError as exc:
        raise HTTPException(status_code=409, detail={"code": "E_REFERRAL_CONVERSION_CONFLICT"}) from exc
    return response


@router.get("/users/{user_id}/stats", response_model=UserReferralStatsResponse)
async def get_user_referral_stats(user_id: str, request: Request) -> UserReferralStatsResponse:
    _assert_service_access(request)
    async with SessionLocal.begin() as session:
        stats = await ReferralService.get_user_referral_stats(
            session,
            user_id=user_id,
            identity=get_identity_lookup(),
            recent_limit=get_settings().referral_recent_limit,
        )

    return UserReferralStatsResponse(
        referral_code=stats.referral_code,
        total_clicks=stats.total_clicks,
        total_conversions=stats.total_conversions,
        conversion_rate=stats.conversion_rate,
        total_revenue=float(stats.total_revenue),
        total_rewards_earned=float(stats.total_rewards_earned),
        pending_rewards=float(stats.pending_rewards),
        available_rewards=float(stats.available_rewards),
        recent_referrals=[
            RecentReferralResponse(
                order_id=item.order_id,
                order_total=float(item.order_total),
                reward_amount=float(item.reward_amount),
                status=item.status,
                converted_at=item.converted_at,
                referred_email=item.referred_email,
            )
            for item in stats.recent_referrals
        ],
    )


@router.post("/shares", response_model=SocialShareResponse)
async def track_social_share(payload: SocialShareRequest, request: Request) -> SocialShareResponse:
    now_utc = datetime.now(timezone.utc)
    try:
        async with SessionLocal.begin() as session:
            share = await ReferralService.track_social_share(
                session,
                share_type=payload.share_type,
                share_platform=payload.share_platform,
                shared_url=payload.shared_url,
                now_utc=now_utc,
                user_id=payload.user_id,
                product_id=payload.product_id,
                referral_code=payload.referral_code,
                ip_address=_client_ip(request),
            )
            response = SocialShareResponse(
                id=int(share.id),
                share_type=share.share_type,
                share_platform=share.share_platform,
                shared_at=share.shared_at,
            )
    except ReferralError as exc:
        raise_referral_http_error(exc)
    return response
