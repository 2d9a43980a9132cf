from __future__ import annotations

import time
from typing import Dict, List, Optional

from loguru import logger

from giftradar.config import get_settings
from giftradar.db.guild_registry import GuildRegistry
from giftradar.models.promo_code import PromoCode
from giftradar.notifications.base import NotificationSink
from giftradar.notifications.formatter import SYNC_FOOTER, format_code_announcement


class NotificationDispatcher:
    """Publishes code announcements to every guild's code channel."""

    def __init__(
        self,
        sink: NotificationSink,
        registry: GuildRegistry,
        delay_seconds: Optional[float] = None,
    ):
        self.sink = sink
        self.registry = registry
        self.settings = get_settings()
        if delay_seconds is None:
            delay_seconds = self.settings.publish_delay_seconds
        self.delay_seconds = delay_seconds

    def publish_codes(
        self, codes: List[PromoCode], footer: str = SYNC_FOOTER
    ) -> Dict[str, int]:
        """Announce codes in every configured code channel.

        Returns:
            Dict with guild ids as keys and count of sent announcements as values.
        """
        if not self.settings.notification_enabled:
            logger.info("Notifications are disabled, skipping dispatch")
            return {}
        if not codes:
            return {}

        logger.info(f"Publishing {len(codes)} new codes on configured channels...")
        results: Dict[str, int] = {}

        for guild_id, config in self.registry.items():
            if not config.code_channel_id:
                continue

            sent = 0
            for code in codes:
                try:
                    if self.sink.announce(
                        config.code_channel_id, format_code_announcement(code, footer)
                    ):
                        sent += 1
                except Exception as e:
                    logger.error(f"Error publishing {code.id} for guild {guild_id}: {e}")

                if self.delay_seconds:
                    time.sleep(self.delay_seconds)

            results[guild_id] = sent
            logger.info(
                f"Published {sent}/{len(codes)} codes on channel "
                f"{config.code_channel_id} (guild {guild_id})"
            )

        return results
