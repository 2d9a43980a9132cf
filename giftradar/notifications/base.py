from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List


@dataclass(frozen=True)
class AnnouncementRef:
    channel_id: str
    message_id: str


@dataclass(frozen=True)
class Announcement:
    """A posted message that carries a promotional code id in its title."""

    ref: AnnouncementRef
    code_id: str


class NotificationSink(ABC):
    @abstractmethod
    def announce(self, channel_id: str, embed: Dict[str, Any]) -> bool:
        """Post one embed to a channel."""
        ...

    @abstractmethod
    def retract(self, ref: AnnouncementRef) -> bool:
        """Delete a previously posted announcement."""
        ...


class AnnouncementSource(ABC):
    @abstractmethod
    def list_recent(self, channel_id: str, limit: int = 100) -> List[Announcement]:
        """Recent self-authored code announcements in a channel."""
        ...
