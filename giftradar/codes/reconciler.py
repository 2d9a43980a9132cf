"""Retraction of announcements whose codes are no longer valid.

Posted announcements are only identified by the code id in their title; every
one found in a channel is re-verified against the store and deleted when the
code has expired or is unknown.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from loguru import logger

from giftradar.codes.verification import VerificationEngine
from giftradar.db.guild_registry import GuildRegistry
from giftradar.errors import PersistenceWriteError
from giftradar.models.base import Clock, utc_now
from giftradar.notifications.base import AnnouncementSource, NotificationSink


@dataclass
class ReconcileReport:
    verified_count: int = 0
    expired_count: int = 0
    retract_failures: int = 0
    channels_scanned: int = 0

    def __add__(self, other: "ReconcileReport") -> "ReconcileReport":
        return ReconcileReport(
            verified_count=self.verified_count + other.verified_count,
            expired_count=self.expired_count + other.expired_count,
            retract_failures=self.retract_failures + other.retract_failures,
            channels_scanned=self.channels_scanned + other.channels_scanned,
        )


class AnnouncementReconciler:
    def __init__(
        self,
        verifier: VerificationEngine,
        source: AnnouncementSource,
        sink: NotificationSink,
        registry: Optional[GuildRegistry] = None,
        clock: Clock = utc_now,
        scan_limit: int = 100,
    ):
        self.verifier = verifier
        self.source = source
        self.sink = sink
        self.registry = registry
        self.clock = clock
        self.scan_limit = scan_limit

    def reconcile_channel(self, channel_id: str) -> ReconcileReport:
        report = ReconcileReport(channels_scanned=1)

        for announcement in self.source.list_recent(channel_id, limit=self.scan_limit):
            result = self.verifier.verify(announcement.code_id)
            if result.valid:
                report.verified_count += 1
                continue

            report.expired_count += 1
            try:
                retracted = self.sink.retract(announcement.ref)
            except Exception as e:
                logger.error(f"Cannot delete message {announcement.ref.message_id}: {e}")
                retracted = False
            if not retracted:
                report.retract_failures += 1

        logger.info(
            f"Channel {channel_id}: {report.verified_count} valid, "
            f"removed {report.expired_count - report.retract_failures} expired codes"
        )
        return report

    def reconcile_all(self) -> ReconcileReport:
        """Reconcile the code channel of every configured guild."""
        if self.registry is None:
            raise RuntimeError("reconcile_all needs a guild registry")

        total = ReconcileReport()
        for guild_id, config in self.registry.items():
            if not config.code_channel_id:
                continue

            try:
                total += self.reconcile_channel(config.code_channel_id)
            except Exception as e:
                logger.error(f"Error verifying codes for server {guild_id}: {e}")
                continue

            try:
                self.registry.update(guild_id, last_check=self.clock())
            except PersistenceWriteError as e:
                logger.warning(f"Could not record last check for guild {guild_id}: {e}")

        logger.info(
            f"Verified {total.verified_count} codes across {total.channels_scanned} "
            f"channels, {total.expired_count} expired"
        )
        return total
