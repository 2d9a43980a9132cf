"""Periodic jobs.

Each job catches its own failures so the interval chain keeps running.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from loguru import logger

from giftradar.codes.reconciler import AnnouncementReconciler, ReconcileReport
from giftradar.codes.sync import SyncEngine
from giftradar.models.promo_code import SyncResult
from giftradar.notifications.dispatcher import NotificationDispatcher
from giftradar.reminders.scheduler import ReminderScheduler


def run_code_sync(
    engine: SyncEngine, dispatcher: NotificationDispatcher
) -> Optional[SyncResult]:
    """Sync codes from every source and announce the new ones."""
    logger.info(f"Started synchronizing codes from websites at {datetime.now(timezone.utc)}")

    try:
        result = engine.sync_once()
    except Exception as e:
        logger.error(f"Error synchronizing codes: {e}")
        return None

    if not result.success:
        logger.info(f"Synchronization failed: {result.failure_reason}")
        return result

    logger.info(f"Synchronization completed: {result.added} new codes added")
    if result.new_codes:
        try:
            results = dispatcher.publish_codes(result.new_codes)
            logger.info(f"New code notification results: {results}")
        except Exception as e:
            logger.error(f"Error publishing new codes: {e}")
    return result


def run_code_verification(reconciler: AnnouncementReconciler) -> Optional[ReconcileReport]:
    """Retract announcements of expired codes in every code channel."""
    logger.info("Started automatic code verification...")

    try:
        report = reconciler.reconcile_all()
    except Exception as e:
        logger.error(f"Error verifying codes: {e}")
        return None

    logger.info("Automatic code verification completed")
    return report


def run_settings_refresh(reminders: ReminderScheduler) -> int:
    """Apply guild settings that the CLI wrote while the server was running."""
    try:
        return reminders.refresh()
    except Exception as e:
        logger.error(f"Error reloading guild settings: {e}")
        return 0
