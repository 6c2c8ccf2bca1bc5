from __future__ import annotations

from datetime import datetime, timezone

import structlog
from celery.schedules import crontab

from referral_ledger.db.session import SessionLocal
from referral_ledger.referrals.service import ReferralService
from referral_ledger.services.alerts import send_ops_alert
from referral_ledger.workers.asyncio_runner import run_async_job
from referral_ledger.workers.celery_app import celery_app

logger = structlog.get_logger(__name__)
REWARDS_MATURED_EVENT = "referral_rewards_matured"


async def run_referral_reward_maturation_async() -> dict[str, int]:
    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        terms = await ReferralService.get_referral_terms(session)
        approved = await ReferralService.process_pending_rewards(
            session,
            now_utc=now_utc,
            terms=terms,
        )

    result = {
        "approved": approved,
        "reward_delay_days": terms.reward_delay_days,
        "alert_sent": 0,
    }
    if approved > 0:
        result["alert_sent"] = int(
            await send_ops_alert(
                event=REWARDS_MATURED_EVENT,
                payload={
                    "approved": approved,
                    "reward_delay_days": terms.reward_delay_days,
                    "processed_at": now_utc.isoformat(),
                },
            )
        )
    logger.info("referral_reward_maturation_finished", **result)
    return result


@celery_app.task(name="referral_ledger.workers.tasks.referrals.run_referral_reward_maturation")
def run_referral_reward_maturation() -> dict[str, int]:
    return run_async_job(run_referral_reward_maturation_async())


celery_app.conf.beat_schedule = celery_app.conf.beat_schedule or {}
celery_app.conf.beat_schedule.update(
    {
        "referral-reward-maturation-daily-0215-utc": {
            "task": "referral_ledger.workers.tasks.referrals.run_referral_reward_maturation",
            "schedule": crontab(hour=2, minute=15),
            "options": {"queue": "q_normal"},
        },
    }
)
