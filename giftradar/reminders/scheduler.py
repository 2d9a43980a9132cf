"""Per-guild recurring reminders.

Each guild has at most one live job per reminder kind. A job fires once
(``DateTrigger``), sends the reminder, then arms the next job at the same
time of day ``interval`` days later. Only the guild configuration is
persisted; ``start`` re-derives every job from it after a restart, and
``refresh`` re-arms the jobs whose settings another process changed.

States per guild and kind::

    unscheduled --arm--> armed --fire--> firing --re-arm--> armed
                           ^                                  |
                           +-------------- cancel ------------+

Every arm bumps a generation counter. A firing whose generation is no
longer current was superseded by a re-configuration and does not re-arm.
"""
from __future__ import annotations

import enum
import threading
from dataclasses import dataclass, replace
from datetime import datetime, time
from typing import Dict, Optional, Tuple

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.date import DateTrigger
from loguru import logger

from giftradar.config import get_settings
from giftradar.db.guild_registry import GuildRegistry
from giftradar.errors import ChannelNotConfiguredError
from giftradar.models.base import Clock, utc_now
from giftradar.models.guild_config import (
    GuildReminderConfig,
    ReminderKind,
    StartFrom,
    parse_utc_time,
)
from giftradar.notifications.base import NotificationSink
from giftradar.notifications.formatter import (
    format_arena_reminder,
    format_bear_trap_reminder,
    format_time_until,
)
from giftradar.reminders.schedule import advance_fire, compute_next_fire

ARENA_INTERVAL_DAYS = 1


class ReminderStatus(enum.Enum):
    unscheduled = "unscheduled"
    armed = "armed"
    firing = "firing"


@dataclass
class ReminderState:
    status: ReminderStatus = ReminderStatus.unscheduled
    next_fire: Optional[datetime] = None
    generation: int = 0
    job_id: Optional[str] = None
    # Schedule the live job was armed with
    target: Optional[time] = None
    interval_days: Optional[int] = None


class ReminderScheduler:
    def __init__(
        self,
        scheduler: BaseScheduler,
        registry: GuildRegistry,
        sink: NotificationSink,
        clock: Clock = utc_now,
        arena_time: Optional[time] = None,
    ):
        self.settings = get_settings()
        self.scheduler = scheduler
        self.registry = registry
        self.sink = sink
        self.clock = clock
        self.arena_time = arena_time or parse_utc_time(self.settings.arena_reminder_time)
        self._states: Dict[Tuple[str, ReminderKind], ReminderState] = {}
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Arm every reminder derivable from the persisted configuration."""
        for guild_id, config in self.registry.items():
            self.arm(guild_id, ReminderKind.arena)
            if config.bear_trap_time:
                # Loading from saved settings always counts from today
                self.arm(guild_id, ReminderKind.bear_trap, StartFrom.today)
        logger.info("Reminder scheduler started")

    def stop(self) -> None:
        with self._lock:
            for guild_id, kind in list(self._states):
                self._cancel_locked(guild_id, kind)
        logger.info("Reminder scheduler stopped")

    def refresh(self) -> int:
        """Pick up settings written by another process.

        Reloads the registry and re-arms every reminder whose target time or
        interval no longer matches its live job; reminders whose time was
        removed are cancelled.

        Returns:
            Number of reminders re-armed or cancelled.
        """
        if not self.registry.reload():
            return 0

        changed = 0
        for guild_id, config in self.registry.items():
            for kind in ReminderKind:
                target = self.target_time(kind, config)
                state = self.state(guild_id, kind)
                if target is None:
                    if state.status is not ReminderStatus.unscheduled:
                        self.cancel(guild_id, kind)
                        changed += 1
                    continue

                armed_with = (state.target, state.interval_days)
                if state.status is ReminderStatus.unscheduled or armed_with != (
                    target,
                    self.interval_days(kind, config),
                ):
                    self.arm(guild_id, kind)
                    changed += 1

        if changed:
            logger.info(f"Re-armed {changed} reminders after a settings change")
        return changed

    def state(self, guild_id: str, kind: ReminderKind) -> ReminderState:
        with self._lock:
            return replace(self._states.get((str(guild_id), kind), ReminderState()))

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def set_reminder_channel(self, guild_id: str, channel_id: str) -> GuildReminderConfig:
        config = self.registry.update(guild_id, reminder_channel_id=channel_id)
        if self.state(guild_id, ReminderKind.arena).status is ReminderStatus.unscheduled:
            self.arm(guild_id, ReminderKind.arena)
        if (
            config.bear_trap_time
            and self.state(guild_id, ReminderKind.bear_trap).status
            is ReminderStatus.unscheduled
        ):
            self.arm(guild_id, ReminderKind.bear_trap)
        return config

    def configure_bear_trap(
        self,
        guild_id: str,
        hour: int,
        minute: int = 0,
        start_from: StartFrom = StartFrom.today,
        interval_days: Optional[int] = None,
    ) -> datetime:
        """Set the Bear Trap time and re-arm; returns the next fire instant."""
        if not (0 <= hour <= 23 and 0 <= minute <= 59):
            raise ValueError("Invalid hour. Please use a value between 0 and 23.")
        self._require_channel(guild_id)

        if interval_days is None:
            interval_days = self.settings.bear_trap_default_interval_days
        self.registry.update(
            guild_id,
            bear_trap_time=f"{hour:02d}:{minute:02d}",
            bear_trap_interval_days=interval_days,
        )
        return self.arm(guild_id, ReminderKind.bear_trap, start_from)

    def disable_bear_trap(self, guild_id: str) -> None:
        self.registry.update(guild_id, bear_trap_time=None)
        self.cancel(guild_id, ReminderKind.bear_trap)

    def configure_arena(self, guild_id: str, enabled: bool) -> datetime:
        """Toggle Arena reminders; the daily job itself stays armed."""
        self._require_channel(guild_id)
        self.registry.update(guild_id, arena_reminders_enabled=enabled)
        return self.arm(guild_id, ReminderKind.arena)

    def _require_channel(self, guild_id: str) -> None:
        config = self.registry.get(guild_id)
        if config is None or not config.reminder_channel_id:
            raise ChannelNotConfiguredError(guild_id, "reminder")

    # ------------------------------------------------------------------
    # Arming
    # ------------------------------------------------------------------

    def target_time(self, kind: ReminderKind, config: Optional[GuildReminderConfig]) -> Optional[time]:
        if kind is ReminderKind.arena:
            return self.arena_time
        return config.bear_trap_target() if config else None

    def interval_days(self, kind: ReminderKind, config: Optional[GuildReminderConfig]) -> int:
        if kind is ReminderKind.arena:
            return ARENA_INTERVAL_DAYS
        if config is None:
            return self.settings.bear_trap_default_interval_days
        return config.bear_trap_interval_days

    def arm(
        self,
        guild_id: str,
        kind: ReminderKind,
        start_from: StartFrom = StartFrom.today,
    ) -> Optional[datetime]:
        """Cancel any pending job for this guild/kind and arm a fresh one."""
        guild_id = str(guild_id)
        config = self.registry.get(guild_id)
        target = self.target_time(kind, config)

        with self._lock:
            self._cancel_locked(guild_id, kind)
            if target is None:
                return None
            now = self.clock()
            next_fire = compute_next_fire(target, now, start_from)
            interval = self.interval_days(kind, config)
            self._arm_at_locked(guild_id, kind, next_fire, target, interval)

        logger.info(
            f"{kind.value} reminder for guild {guild_id} scheduled for "
            f"{next_fire.isoformat()} (in {format_time_until(next_fire - now)})"
        )
        return next_fire

    def cancel(self, guild_id: str, kind: ReminderKind) -> None:
        with self._lock:
            self._cancel_locked(str(guild_id), kind)

    def _cancel_locked(self, guild_id: str, kind: ReminderKind) -> None:
        state = self._states.get((guild_id, kind))
        if state is None:
            return
        self._remove_job(state.job_id)
        state.generation += 1
        state.status = ReminderStatus.unscheduled
        state.next_fire = None
        state.job_id = None
        state.target = None
        state.interval_days = None

    def _arm_at_locked(
        self,
        guild_id: str,
        kind: ReminderKind,
        fire_at: datetime,
        target: time,
        interval_days: int,
    ) -> None:
        state = self._states.setdefault((guild_id, kind), ReminderState())
        self._remove_job(state.job_id)
        state.generation += 1
        state.status = ReminderStatus.armed
        state.next_fire = fire_at
        state.job_id = f"{kind.value}:{guild_id}:{state.generation}"
        state.target = target
        state.interval_days = interval_days

        self.scheduler.add_job(
            self._fire,
            DateTrigger(run_date=fire_at),
            args=[guild_id, kind, fire_at, state.generation],
            id=state.job_id,
            name=f"{kind.value} reminder ({guild_id})",
            misfire_grace_time=None,
        )

    def _remove_job(self, job_id: Optional[str]) -> None:
        if job_id is None:
            return
        try:
            self.scheduler.remove_job(job_id)
        except JobLookupError:
            # Already fired and dropped by the scheduler
            pass

    # ------------------------------------------------------------------
    # Firing
    # ------------------------------------------------------------------

    def _fire(
        self, guild_id: str, kind: ReminderKind, fire_at: datetime, generation: int
    ) -> None:
        key = (guild_id, kind)
        with self._lock:
            state = self._states.get(key)
            if state is None or state.generation != generation:
                logger.debug(f"Skipping superseded {kind.value} reminder for guild {guild_id}")
                return
            state.status = ReminderStatus.firing

        config = self.registry.get(guild_id)
        interval = self.interval_days(kind, config)
        try:
            self._send(guild_id, kind, config, advance_fire(fire_at, interval, self.clock()))
        except Exception as e:
            logger.error(f"Error sending {kind.value} reminder for server {guild_id}: {e}")

        with self._lock:
            state = self._states.get(key)
            if state is None or state.generation != generation:
                return
            # Config may have changed while sending
            config = self.registry.get(guild_id)
            if self.target_time(kind, config) is None:
                self._cancel_locked(guild_id, kind)
                return
            interval = self.interval_days(kind, config)
            next_fire = advance_fire(fire_at, interval, self.clock())
            self._arm_at_locked(guild_id, kind, next_fire, state.target, interval)

        logger.info(
            f"Next {kind.value} reminder for guild {guild_id} will be on {next_fire.isoformat()}"
        )

    def _send(
        self,
        guild_id: str,
        kind: ReminderKind,
        config: Optional[GuildReminderConfig],
        next_fire: datetime,
    ) -> None:
        if config is None or not config.reminder_channel_id:
            logger.debug(f"No reminder channel for guild {guild_id}")
            return

        now = self.clock()
        if kind is ReminderKind.arena:
            if not config.arena_reminders_enabled:
                return
            embed = format_arena_reminder(next_fire, now)
        else:
            embed = format_bear_trap_reminder(config.bear_trap_interval_days, next_fire, now)

        if self.sink.announce(config.reminder_channel_id, embed):
            logger.info(
                f"{kind.value} reminder sent to channel {config.reminder_channel_id} "
                f"(guild {guild_id})"
            )
