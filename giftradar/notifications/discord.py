from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx
from loguru import logger

from giftradar.config import get_settings
from giftradar.notifications.base import (
    Announcement,
    AnnouncementRef,
    AnnouncementSource,
    NotificationSink,
)
from giftradar.notifications.formatter import extract_code_id

REQUEST_TIMEOUT = 10  # seconds


class DiscordClient(NotificationSink, AnnouncementSource):
    """Post, list and delete channel messages through the Discord REST API."""

    def __init__(self):
        settings = get_settings()
        self.bot_token = settings.discord_bot_token
        self.api_base = settings.discord_api_base.rstrip("/")
        self._user_id: Optional[str] = None

    @classmethod
    def is_configured(cls) -> bool:
        """Check if a bot token is set."""
        settings = get_settings()
        return bool(settings.discord_bot_token)

    def _client(self) -> httpx.Client:
        return httpx.Client(
            base_url=self.api_base,
            headers={"Authorization": f"Bot {self.bot_token}"},
            timeout=REQUEST_TIMEOUT,
        )

    def announce(self, channel_id: str, embed: Dict[str, Any]) -> bool:
        """Send one embed to a channel.

        Returns:
            True if sent successfully, False otherwise.
        """
        try:
            with self._client() as client:
                response = client.post(
                    f"/channels/{channel_id}/messages", json={"embeds": [embed]}
                )
                response.raise_for_status()

            logger.info(f"Discord message sent to channel {channel_id}")
            return True
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Cannot send message to channel {channel_id}: "
                f"{e.response.status_code} - {e.response.text}"
            )
            return False
        except httpx.RequestError as e:
            logger.error(f"Discord request failed for channel {channel_id}: {e}")
            return False

    def retract(self, ref: AnnouncementRef) -> bool:
        try:
            with self._client() as client:
                response = client.delete(
                    f"/channels/{ref.channel_id}/messages/{ref.message_id}"
                )
                response.raise_for_status()

            logger.info(f"Deleted message {ref.message_id} in channel {ref.channel_id}")
            return True
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Cannot delete message {ref.message_id}: "
                f"{e.response.status_code} - {e.response.text}"
            )
            return False
        except httpx.RequestError as e:
            logger.error(f"Discord request failed deleting {ref.message_id}: {e}")
            return False

    def bot_user_id(self) -> Optional[str]:
        if self._user_id is None:
            try:
                with self._client() as client:
                    response = client.get("/users/@me")
                    response.raise_for_status()
                    self._user_id = str(response.json()["id"])
            except (httpx.HTTPError, KeyError, ValueError) as e:
                logger.error(f"Cannot resolve bot user: {e}")
                return None
        return self._user_id

    def list_recent(self, channel_id: str, limit: int = 100) -> List[Announcement]:
        """List recent code announcements posted by this bot."""
        user_id = self.bot_user_id()
        if user_id is None:
            return []

        try:
            with self._client() as client:
                response = client.get(
                    f"/channels/{channel_id}/messages", params={"limit": limit}
                )
                response.raise_for_status()
                messages = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Cannot list messages in channel {channel_id}: "
                f"{e.response.status_code} - {e.response.text}"
            )
            return []
        except (httpx.RequestError, ValueError) as e:
            logger.error(f"Discord request failed listing channel {channel_id}: {e}")
            return []

        announcements = []
        for message in messages:
            if str(message.get("author", {}).get("id")) != user_id:
                continue
            embeds = message.get("embeds") or []
            if not embeds:
                continue
            code_id = extract_code_id(embeds[0].get("title"))
            if code_id is None:
                continue
            announcements.append(
                Announcement(
                    ref=AnnouncementRef(channel_id=str(channel_id), message_id=str(message["id"])),
                    code_id=code_id,
                )
            )
        return announcements
