from __future__ import annotations

from types import SimpleNamespace

import pytest
from httpx import ASGITransport, AsyncClient

from referral_ledger.api.routes import referrals
from referral_ledger.main import app
from tests.helpers import FakeIdentityLookup

SERVICE_TOKEN = "storefront-secret"


def _route_settings(**overrides) -> SimpleNamespace:
    values = {
        "internal_api_token": SERVICE_TOKEN,
        "internal_api_allowlist": "203.0.113.0/24",
        "internal_api_trusted_proxies": "",
        "referral_recent_limit": 10,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


@pytest.fixture
def wired(monkeypatch, session_factory, identity, seeded_settings):
    monkeypatch.setattr(referrals, "SessionLocal", session_factory)
    monkeypatch.setattr(referrals, "get_identity_lookup", lambda: identity)
    monkeypatch.setattr(referrals, "get_settings", _route_settings)
    return identity


async def _call(
    method: str,
    path: str,
    *,
    json: dict[str, object] | None = None,
    headers: dict[str, str] | None = None,
    token: str | None = SERVICE_TOKEN,
) -> tuple[int, dict[str, object]]:
    request_headers = dict(headers or {})
    if token is not None:
        request_headers["X-Internal-Token"] = token
    async with AsyncClient(
        transport=ASGITransport(app=app, client=("203.0.113.9", 8080)),
        base_url="http://testserver",
    ) as client:
        response = await client.request(method, path, json=json, headers=request_headers)
    return response.status_code, response.json()


@pytest.mark.asyncio
async def test_create_code_is_idempotent_per_user(wired) -> None:
    status, first = await _call("POST", "/referrals/codes", json={"user_id": "u-jane"})
    assert status == 200
    assert first["user_id"] == "u-jane"
    assert first["code"].startswith("JANE")
    assert len(first["code"]) == 8
    assert first["clicks"] == 0
    assert first["total_revenue"] == 0.0
    assert first["active"] is True

    status, second = await _call("POST", "/referrals/codes", json={"user_id": "u-jane"})
    assert status == 200
    assert second["id"] == first["id"]
    assert second["code"] == first["code"]


@pytest.mark.asyncio
async def test_create_code_with_custom_code_and_conflict(wired) -> None:
    status, body = await _call(
        "POST", "/referrals/codes", json={"user_id": "u-jane", "code": "jane01"}
    )
    assert status == 200
    assert body["code"] == "JANE01"

    status, body = await _call(
        "POST", "/referrals/codes", json={"user_id": "u-bob", "code": "JANE01"}
    )
    assert status == 409
    assert body["detail"]["code"] == "E_REFERRAL_CONFLICT"


@pytest.mark.asyncio
async def test_create_code_for_unknown_user_is_404(wired) -> None:
    status, body = await _call("POST", "/referrals/codes", json={"user_id": "u-ghost"})

    assert status == 404
    assert body["detail"]["code"] == "E_REFERRAL_NOT_FOUND"


@pytest.mark.asyncio
async def test_create_code_when_identity_is_down_is_503(monkeypatch, wired) -> None:
    monkeypatch.setattr(referrals, "get_identity_lookup", lambda: FakeIdentityLookup(fail=True))

    status, body = await _call("POST", "/referrals/codes", json={"user_id": "u-jane"})

    assert status == 503
    assert body == {"detail": {"code": "E_IDENTITY_UNAVAILABLE"}}


@pytest.mark.asyncio
async def test_code_lookup_by_code_and_user(wired) -> None:
    await _call("POST", "/referrals/codes", json={"user_id": "u-jane", "code": "JANE01"})

    status, by_code = await _call("GET", "/referrals/codes/jane01")
    assert status == 200
    assert by_code["user_id"] == "u-jane"

    status, by_user = await _call("GET", "/referrals/users/u-jane/code")
    assert status == 200
    assert by_user["code"] == "JANE01"

    status, body = await _call("GET", "/referrals/codes/NOPE99")
    assert status == 404
    assert body == {"detail": {"code": "E_REFERRAL_NOT_FOUND"}}

    status, _ = await _call("GET", "/referrals/users/u-bob/code")
    assert status == 404


@pytest.mark.asyncio
async def test_click_then_conversion_flow(wired) -> None:
    await _call("POST", "/referrals/codes", json={"user_id": "u-jane", "code": "JANE01"})

    status, click = await _call(
        "POST",
        "/referrals/clicks",
        json={"referral_code": "JANE01", "landing_page": "/products/tea"},
        headers={"User-Agent": "pytest-agent", "Referer": "https://social.example/p/1"},
    )
    assert status == 200
    assert click["referral_code"] == "JANE01"
    assert click["click_id"] > 0

    status, conversion = await _call(
        "POST",
        "/referrals/conversions",
        json={
            "referral_code": "JANE01",
            "order_id": "order-1001",
            "order_total": "120.00",
            "referred_user_id": "u-friend",
            "click_id": click["click_id"],
        },
    )
    assert status == 200
    assert conversion["referrer_user_id"] == "u-jane"
    assert conversion["order_total"] == 120.0
    assert conversion["referrer_reward"] == 10.0
    assert conversion["referred_discount"] == 12.0
    assert conversion["reward_status"] == "pending"
    assert conversion["processed_at"] is None

    status, replay = await _call(
        "POST",
        "/referrals/conversions",
        json={"referral_code": "JANE01", "order_id": "order-1001", "order_total": "120.00"},
    )
    assert status == 200
    assert replay["id"] == conversion["id"]

    status, code = await _call("GET", "/referrals/codes/JANE01")
    assert status == 200
    assert code["clicks"] == 1
    assert code["conversions"] == 1
    assert code["total_revenue"] == 120.0
    assert code["total_rewards"] == 10.0


@pytest.mark.asyncio
async def test_click_on_unknown_code_is_404(wired) -> None:
    status, body = await _call("POST", "/referrals/clicks", json={"referral_code": "NOPE99"})

    assert status == 404
    assert body["detail"] == {
        "code": "E_REFERRAL_NOT_FOUND",
        "message": "Invalid or inactive referral code",
    }


@pytest.mark.asyncio
async def test_conversion_below_minimum_is_422(wired) -> None:
    await _call("POST", "/referrals/codes", json={"user_id": "u-jane", "code": "JANE01"})

    status, body = await _call(
        "POST",
        "/referrals/conversions",
        json={"referral_code": "JANE01", "order_id": "order-small", "order_total": "49.99"},
    )

    assert status == 422
    assert body["detail"]["code"] == "E_REFERRAL_POLICY_VIOLATION"
    assert "$50.00" in body["detail"]["message"]


@pytest.mark.asyncio
async def test_conversion_rejects_negative_total(wired) -> None:
    status, _ = await _call(
        "POST",
        "/referrals/conversions",
        json={"referral_code": "JANE01", "order_id": "order-neg", "order_total": "-1.00"},
    )

    assert status == 422


@pytest.mark.asyncio
async def test_user_stats_endpoint(wired) -> None:
    await _call("POST", "/referrals/codes", json={"user_id": "u-jane", "code": "JANE01"})
    await _call("POST", "/referrals/clicks", json={"referral_code": "JANE01"})
    await _call("POST", "/referrals/clicks", json={"referral_code": "JANE01"})
    await _call(
        "POST",
        "/referrals/conversions",
        json={
            "referral_code": "JANE01",
            "order_id": "order-1",
            "order_total": "75.00",
            "referred_user_id": "u-friend",
        },
    )

    status, stats = await _call("GET", "/referrals/users/u-jane/stats")

    assert status == 200
    assert stats["referral_code"] == "JANE01"
    assert stats["total_clicks"] == 2
    assert stats["total_conversions"] == 1
    assert stats["conversion_rate"] == 50.0
    assert stats["pending_rewards"] == 10.0
    assert stats["available_rewards"] == 0.0
    assert stats["recent_referrals"][0]["referred_email"] == "friend@example.com"

    status, empty = await _call("GET", "/referrals/users/u-bob/stats")
    assert status == 200
    assert empty["referral_code"] == ""
    assert empty["recent_referrals"] == []


@pytest.mark.asyncio
async def test_share_tracking_endpoint(wired) -> None:
    status, share = await _call(
        "POST",
        "/referrals/shares",
        json={
            "share_type": "product",
            "share_platform": "facebook",
            "shared_url": "https://shop.example/products/tea",
            "product_id": "tea-1",
        },
    )
    assert status == 200
    assert share["share_platform"] == "facebook"

    status, body = await _call(
        "POST",
        "/referrals/shares",
        json={"share_type": "product", "share_platform": "myspace", "shared_url": "x"},
    )
    assert status == 422
    assert body["detail"]["code"] == "E_REFERRAL_POLICY_VIOLATION"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("method", "path", "payload"),
    [
        ("POST", "/referrals/codes", {"user_id": "u-jane"}),
        (
            "POST",
            "/referrals/conversions",
            {"referral_code": "JANE01", "order_id": "forged-1", "order_total": "9999.00"},
        ),
        ("GET", "/referrals/users/u-jane/stats", None),
    ],
)
async def test_service_routes_reject_anonymous_callers(wired, method, path, payload) -> None:
    await _call("POST", "/referrals/codes", json={"user_id": "u-jane", "code": "JANE01"})

    status, body = await _call(method, path, json=payload, token=None)
    assert status == 403
    assert body == {"detail": {"code": "E_FORBIDDEN"}}

    status, body = await _call(method, path, json=payload, token="wrong-token")
    assert status == 403
    assert body == {"detail": {"code": "E_FORBIDDEN"}}

    status, code = await _call("GET", "/referrals/codes/JANE01", token=None)
    assert status == 200
    assert code["conversions"] == 0


@pytest.mark.asyncio
async def test_service_routes_reject_callers_outside_allowlist(monkeypatch, wired) -> None:
    monkeypatch.setattr(
        referrals,
        "get_settings",
        lambda: _route_settings(internal_api_allowlist="10.0.0.0/8"),
    )

    status, body = await _call("POST", "/referrals/codes", json={"user_id": "u-jane"})

    assert status == 403
    assert body == {"detail": {"code": "E_FORBIDDEN"}}


@pytest.mark.asyncio
async def test_visitor_routes_stay_public(wired) -> None:
    await _call("POST", "/referrals/codes", json={"user_id": "u-jane", "code": "JANE01"})

    status, _ = await _call("POST", "/referrals/clicks", json={"referral_code": "JANE01"}, token=None)
    assert status == 200

    status, _ = await _call(
        "POST",
        "/referrals/shares",
        json={"share_type": "referral", "share_platform": "copy", "shared_url": "https://shop.example"},
        token=None,
    )
    assert status == 200

    status, _ = await _call("GET", "/referrals/users/u-jane/code", token=None)
    assert status == 200
