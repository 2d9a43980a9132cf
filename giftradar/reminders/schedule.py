"""Fire-time arithmetic for recurring reminders (all times UTC)."""
from __future__ import annotations

from datetime import datetime, time, timedelta, timezone

from giftradar.models.base import ensure_utc
from giftradar.models.guild_config import StartFrom


def compute_next_fire(
    target: time, now: datetime, start_from: StartFrom = StartFrom.today
) -> datetime:
    """Next occurrence of ``target`` strictly after ``now``.

    A target equal to ``now`` counts as already passed.
    """
    now = ensure_utc(now)
    next_fire = datetime.combine(now.date(), target).replace(tzinfo=timezone.utc)
    if start_from is StartFrom.tomorrow or next_fire <= now:
        next_fire += timedelta(days=1)
    return next_fire


def advance_fire(current: datetime, interval_days: int, now: datetime) -> datetime:
    """Step ``current`` forward by the interval until it lies after ``now``."""
    if interval_days < 1:
        raise ValueError("interval_days must be at least 1")

    step = timedelta(days=interval_days)
    next_fire = ensure_utc(current) + step
    now = ensure_utc(now)
    while next_fire <= now:
        next_fire += step
    return next_fire
