from giftradar.notifications.base import (
    Announcement,
    AnnouncementRef,
    AnnouncementSource,
    NotificationSink,
)

__all__ = [
    "Announcement",
    "AnnouncementRef",
    "AnnouncementSource",
    "NotificationSink",
]
