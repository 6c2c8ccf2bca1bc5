from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import httpx
import structlog

from referral_ledger.core.config import get_settings

logger = structlog.get_logger(__name__)
SEVERITY_COLOR = {
    "critical": "#B42318",
    "error": "#F04438",
    "warning": "#F79009",
    "info": "#1570EF",
}
DEFAULT_SEVERITY = "warning"
EVENT_SEVERITIES = {
    "referral_rewards_matured": "info",
    "referral_rewards_maturation_failed": "error",
}


@dataclass(frozen=True)
class AlertTarget:
    channel: str
    url: str


def _setting_str(settings: object, attr: str) -> str:
    value = getattr(settings, attr, "")
    return value.strip() if isinstance(value, str) else ""


def _resolve_targets(settings: object) -> list[AlertTarget]:
    targets: list[AlertTarget] = []
    slack_webhook_url = _setting_str(settings, "ops_alert_slack_webhook_url")
    if slack_webhook_url:
        targets.append(AlertTarget(channel="slack", url=slack_webhook_url))
    generic_webhook_url = _setting_str(settings, "ops_alert_webhook_url")
    if generic_webhook_url:
        targets.append(AlertTarget(channel="generic", url=generic_webhook_url))
    return targets


def _build_body(
    *,
    channel: str,
    event: str,
    payload: dict[str, object],
    severity: str,
    sent_at: datetime,
    app_env: str,
) -> dict[str, Any]:
    if channel == "slack":
        return {
            "text": f"[{severity.upper()}] {event}",
            "attachments": [
                {
                    "color": SEVERITY_COLOR.get(severity, SEVERITY_COLOR[DEFAULT_SEVERITY]),
                    "fields": [
                        {"title": "Environment", "value": app_env, "short": True},
                        {"title": "Sent At", "value": sent_at.isoformat(), "short": True},
                        {
                            "title": "Payload",
                            "value": json.dumps(payload, sort_keys=True, default=str),
                            "short": False,
                        },
                    ],
                }
            ],
        }
    return {
        "event": event,
        "payload": payload,
        "severity": severity,
        "sent_at": sent_at.isoformat(),
        "app_env": app_env,
    }


async def send_ops_alert(*, event: str, payload: dict[str, object]) -> bool:
    """Posts ``event`` to every configured webhook; True when one accepted it."""
    settings = get_settings()
    targets = _resolve_targets(settings)
    if not targets:
        return False

    severity = EVENT_SEVERITIES.get(event, DEFAULT_SEVERITY)
    sent_at = datetime.now(timezone.utc)
    app_env = _setting_str(settings, "app_env") or "dev"

    delivered_to: list[str] = []
    failed_to: list[str] = []
    async with httpx.AsyncClient(timeout=5.0) as client:
        for target in targets:
            body = _build_body(
                channel=target.channel,
                event=event,
                payload=payload,
                severity=severity,
                sent_at=sent_at,
                app_env=app_env,
            )
            try:
                response = await client.post(target.url, json=body)
                response.raise_for_status()
            except httpx.HTTPError:
                logger.exception("ops_alert_delivery_failed", alert_event=event, provider=target.channel)
                failed_to.append(target.channel)
                continue
            delivered_to.append(target.channel)

    if not delivered_to:
        logger.error("ops_alert_delivery_exhausted", alert_event=event, failed_to=failed_to)
        return False

    logger.info(
        "ops_alert_delivered",
        alert_event=event,
        severity=severity,
        delivered_to=delivered_to,
        failed_to=failed_to,
    )
    return True
