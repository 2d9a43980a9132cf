from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

from apscheduler.schedulers.background import BackgroundScheduler
from loguru import logger

from giftradar.config import get_settings
from giftradar.scheduler.jobs import (
    run_code_sync,
    run_code_verification,
    run_settings_refresh,
)

if TYPE_CHECKING:
    from giftradar.app import GiftRadarApp


def create_scheduler() -> BackgroundScheduler:
    # One job per kind at a time; late runs still execute
    return BackgroundScheduler(
        timezone="UTC",
        job_defaults={"coalesce": True, "max_instances": 1},
    )


def add_code_jobs(scheduler: BackgroundScheduler, app: "GiftRadarApp") -> None:
    settings = get_settings()
    now = datetime.now(timezone.utc)

    # Every 6 hours by default, first run immediately
    scheduler.add_job(
        run_code_sync,
        "interval",
        hours=settings.code_sync_interval_hours,
        args=[app.sync_engine, app.dispatcher],
        id="code_sync",
        name="Code Sync",
        next_run_time=now,
    )

    scheduler.add_job(
        run_code_verification,
        "interval",
        hours=settings.code_verify_interval_hours,
        args=[app.reconciler],
        id="code_verification",
        name="Code Verification",
        next_run_time=now,
    )

    logger.info(
        f"Scheduler configured: code sync every {settings.code_sync_interval_hours}h, "
        f"verification every {settings.code_verify_interval_hours}h"
    )


def add_settings_job(scheduler: BackgroundScheduler, app: "GiftRadarApp") -> None:
    settings = get_settings()

    # CLI commands write settings.json from another process
    scheduler.add_job(
        run_settings_refresh,
        "interval",
        minutes=settings.settings_refresh_interval_minutes,
        args=[app.reminders],
        id="settings_refresh",
        name="Settings Refresh",
    )
