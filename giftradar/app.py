from __future__ import annotations

import signal
import threading
from typing import Optional, Sequence

from apscheduler.schedulers.base import BaseScheduler
from loguru import logger

from giftradar.codes.reconciler import AnnouncementReconciler
from giftradar.codes.sync import SyncEngine
from giftradar.codes.verification import VerificationEngine
from giftradar.config import Settings, get_settings
from giftradar.db.code_store import CodeStore
from giftradar.db.guild_registry import GuildRegistry
from giftradar.models.base import Clock, utc_now
from giftradar.models.promo_code import PromoCode
from giftradar.notifications.base import AnnouncementSource, NotificationSink
from giftradar.notifications.discord import DiscordClient
from giftradar.notifications.dispatcher import NotificationDispatcher
from giftradar.reminders.scheduler import ReminderScheduler
from giftradar.scheduler.runner import add_code_jobs, add_settings_job, create_scheduler
from giftradar.sources import BaseSource, default_sources

MANUAL_FOOTER = "Added by an administrator"


class GiftRadarApp:
    """Wires the store, sources, Discord adapter and schedulers together."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        sink: Optional[NotificationSink] = None,
        announcements: Optional[AnnouncementSource] = None,
        sources: Optional[Sequence[BaseSource]] = None,
        scheduler: Optional[BaseScheduler] = None,
        clock: Clock = utc_now,
    ):
        self.settings = settings or get_settings()
        self.clock = clock

        self.registry = GuildRegistry(self.settings.guild_settings_path)
        self.store = CodeStore(
            self.settings.codes_path,
            clock=clock,
            manual_validity_days=self.settings.manual_code_validity_days,
        )

        if sink is None or announcements is None:
            discord = DiscordClient()
            sink = sink or discord
            announcements = announcements or discord
        self.sink = sink

        self.sync_engine = SyncEngine(
            sources if sources is not None else default_sources(clock), self.store
        )
        self.verifier = VerificationEngine(self.store, clock=clock)
        self.dispatcher = NotificationDispatcher(self.sink, self.registry)
        self.reconciler = AnnouncementReconciler(
            self.verifier,
            announcements,
            self.sink,
            registry=self.registry,
            clock=clock,
            scan_limit=self.settings.announcement_scan_limit,
        )

        self.scheduler = scheduler or create_scheduler()
        self.reminders = ReminderScheduler(self.scheduler, self.registry, self.sink, clock=clock)
        self._stopped = threading.Event()

    def add_code(self, code_id: str, description: str = "", announce: bool = True) -> PromoCode:
        code = self.store.add(code_id, description)
        if announce:
            self.dispatcher.publish_codes([code], footer=MANUAL_FOOTER)
        return code

    def start(self) -> None:
        add_code_jobs(self.scheduler, self)
        add_settings_job(self.scheduler, self)
        self.scheduler.start()
        self.reminders.start()
        logger.info("GiftRadar started")

    def shutdown(self, wait: bool = True) -> None:
        self.reminders.stop()
        if self.scheduler.running:
            # Let in-flight sends and writes finish
            self.scheduler.shutdown(wait=wait)
        self._stopped.set()
        logger.info("Shutting down...")

    def run_forever(self) -> None:
        def _handle_signal(signum, frame):
            logger.info(f"Received signal {signum}")
            self._stopped.set()

        signal.signal(signal.SIGINT, _handle_signal)
        signal.signal(signal.SIGTERM, _handle_signal)

        self.start()
        try:
            self._stopped.wait()
        finally:
            self.shutdown()
