from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from functools import lru_cache
from typing import Protocol
from urllib.parse import quote

import httpx
import structlog

from referral_ledger.core.config import get_settings

logger = structlog.get_logger(__name__)
BATCH_LOOKUP_MAX_IDS = 100


class IdentityLookupError(Exception):
    pass


@dataclass(frozen=True, slots=True)
class IdentityRecord:
    user_id: str
    email: str
    name: str | None = None

    @property
    def display_name(self) -> str:
        return self.name or self.email


class IdentityLookup(Protocol):
    async def lookup_user(self, user_id: str) -> IdentityRecord | None: ...

    async def batch_get(self, user_ids: Iterable[str]) -> dict[str, IdentityRecord]: ...


def _parse_record(payload: object) -> IdentityRecord | None:
    if not isinstance(payload, dict):
        return None
    user_id = payload.get("id")
    email = payload.get("email")
    if not isinstance(user_id, str) or not isinstance(email, str):
        return None
    name = payload.get("name")
    return IdentityRecord(
        user_id=user_id,
        email=email,
        name=name if isinstance(name, str) and name.strip() else None,
    )


class HttpIdentityLookup:
    """Reads users from the storefront identity service.

    ``GET {base}/users/{id}`` returns one user or 404,
    ``POST {base}/users/batch`` with ``{"ids": [...]}`` returns ``{"users": [...]}``.
    """

    def __init__(self, *, base_url: str, token: str = "", timeout_sec: float = 5.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._timeout_sec = timeout_sec

    def _headers(self) -> dict[str, str]:
        if not self._token:
            return {}
        return {"Authorization": f"Bearer {self._token}"}

    async def lookup_user(self, user_id: str) -> IdentityRecord | None:
        # One path segment; slashes and query characters stay escaped.
        user_segment = quote(user_id, safe="")
        url = f"{self._base_url}/users/{user_segment}"
        try:
            async with httpx.AsyncClient(timeout=self._timeout_sec) as client:
                response = await client.get(
                    url,
                    headers=self._headers(),
                )
            if response.status_code == 404:
                return None
            response.raise_for_status()
            return _parse_record(response.json())
        except (httpx.HTTPError, ValueError) as exc:
            raise IdentityLookupError(f"identity lookup failed for user {user_id}") from exc

    async def batch_get(self, user_ids: Iterable[str]) -> dict[str, IdentityRecord]:
        unique_ids = sorted({user_id for user_id in user_ids if user_id})
        records: dict[str, IdentityRecord] = {}
        if not unique_ids:
            return records

        try:
            async with httpx.AsyncClient(timeout=self._timeout_sec) as client:
                for start in range(0, len(unique_ids), BATCH_LOOKUP_MAX_IDS):
                    chunk = unique_ids[start : start + BATCH_LOOKUP_MAX_IDS]
                    response = await client.post(
                        f"{self._base_url}/users/batch",
                        json={"ids": chunk},
                        headers=self._headers(),
                    )
                    response.raise_for_status()
                    for item in response.json().get("users", []):
                        record = _parse_record(item)
                        if record is not None:
                            records[record.user_id] = record
        except (httpx.HTTPError, ValueError, AttributeError) as exc:
            raise IdentityLookupError("identity batch lookup failed") from exc

        logger.debug("identity_batch_lookup_done", requested=len(unique_ids), found=len(records))
        return records


@lru_cache(maxsize=1)
def get_identity_lookup() -> IdentityLookup:
    settings = get_settings()
    return HttpIdentityLookup(
        base_url=settings.identity_service_url,
        token=settings.identity_service_token,
        timeout_sec=settings.identity_service_timeout_sec,
    )
