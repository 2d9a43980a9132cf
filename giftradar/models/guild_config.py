from __future__ import annotations

import enum
import re
from datetime import datetime, time
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")


class ReminderKind(enum.Enum):
    bear_trap = "bear_trap"
    arena = "arena"


class StartFrom(enum.Enum):
    today = "today"
    tomorrow = "tomorrow"


def parse_utc_time(value: str) -> time:
    """Parse an ``HH:MM`` 24-hour string into a UTC ``time``."""
    match = _TIME_PATTERN.match(value.strip())
    if not match:
        raise ValueError("Invalid time format. Please use HH:MM in 24-hour format.")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        raise ValueError("Invalid time format. Please use HH:MM in 24-hour format.")
    return time(hours, minutes)


class GuildReminderConfig(BaseModel):
    """Per-guild channel and reminder settings.

    Only this configuration is persisted; reminder timers are re-derived from
    it every time the process starts.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    code_channel_id: Optional[str] = Field(None, alias="channelId")
    reminder_channel_id: Optional[str] = Field(None, alias="reminderChannelId")
    bear_trap_time: Optional[str] = Field(None, alias="bearTrapTime")
    bear_trap_interval_days: int = Field(2, ge=1, alias="bearTrapInterval")
    arena_reminders_enabled: bool = Field(False, alias="arenaRemindersEnabled")
    last_check: Optional[datetime] = Field(None, alias="lastCheck")

    @field_validator("bear_trap_time")
    @classmethod
    def _check_time(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        parsed = parse_utc_time(value)
        return parsed.strftime("%H:%M")

    @field_validator("code_channel_id", "reminder_channel_id", mode="before")
    @classmethod
    def _channel_as_str(cls, value):
        return str(value) if value is not None else None

    def bear_trap_target(self) -> Optional[time]:
        if not self.bear_trap_time:
            return None
        return parse_utc_time(self.bear_trap_time)

    def to_document(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
