from __future__ import annotations

import re
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from giftradar.models.promo_code import PromoCode

# Discord embed colors by notification type
COLOR_NEW_CODE = 0x00FF00  # green
COLOR_BEAR_TRAP = 0xFF0000  # red
COLOR_ARENA = 0xFF9900  # orange

CODE_TITLE_LABEL = "Promotional Code"
CODE_TITLE_PATTERN = re.compile(rf"^{CODE_TITLE_LABEL}: (\S+)")

REMINDER_FOOTER = "KingShot Reminder"
SYNC_FOOTER = "Automatically synchronized from website"


def code_title(code_id: str) -> str:
    return f"{CODE_TITLE_LABEL}: {code_id}"


def extract_code_id(title: Optional[str]) -> Optional[str]:
    """Return the code id from an announcement title, if it is one."""
    if not title:
        return None
    match = CODE_TITLE_PATTERN.match(title.strip())
    return match.group(1) if match else None


def format_time_until(delta: timedelta) -> str:
    total_minutes = max(int(delta.total_seconds() // 60), 0)
    hours, minutes = divmod(total_minutes, 60)
    return f"{hours}h {minutes}min"


def format_code_announcement(
    code: PromoCode, footer: str = SYNC_FOOTER
) -> Dict[str, Any]:
    return {
        "title": code_title(code.id),
        "description": code.description or "KingShot promotional code",
        "color": COLOR_NEW_CODE,
        "fields": [
            {
                "name": "Rewards",
                "value": code.rewards or "Various in-game rewards",
                "inline": True,
            },
            {
                "name": "Valid until",
                "value": code.valid_until.strftime("%m/%d/%Y"),
                "inline": True,
            },
        ],
        "footer": {"text": footer},
    }


def format_bear_trap_reminder(
    interval_days: int, next_fire: datetime, now: datetime
) -> Dict[str, Any]:
    time_until = format_time_until(next_fire - now)
    return {
        "title": "Bear Trap Reminder",
        "description": (
            "The Bear Trap event is starting soon! Prepare for battle and "
            "don't miss your chance for great rewards!"
        ),
        "color": COLOR_BEAR_TRAP,
        "fields": [
            {
                "name": "Next Reminder",
                "value": f"In {time_until} (every {interval_days} days)",
                "inline": False,
            }
        ],
        "footer": {"text": REMINDER_FOOTER},
    }


def format_arena_reminder(next_fire: datetime, now: datetime) -> Dict[str, Any]:
    time_until = format_time_until(next_fire - now)
    at = next_fire.strftime("%H:%M")
    return {
        "title": "Arena Battle Reminder",
        "description": (
            "The Arena is waiting for brave warriors! "
            "Don't forget to participate in Arena battles!"
        ),
        "color": COLOR_ARENA,
        "fields": [
            {
                "name": "Next Reminder",
                "value": f"In {time_until} (daily at {at} UTC)",
                "inline": False,
            }
        ],
        "footer": {"text": REMINDER_FOOTER},
    }
