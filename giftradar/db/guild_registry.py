from __future__ import annotations

import threading
from pathlib import Path
from typing import Dict, Iterator, Optional, Tuple, Union

from loguru import logger
from pydantic import ValidationError

from giftradar.db.json_file import JsonDocument
from giftradar.models.guild_config import GuildReminderConfig


class GuildRegistry:
    """Owned ``guild_id -> GuildReminderConfig`` map backed by ``settings.json``."""

    def __init__(self, path: Union[str, Path]):
        self.document = JsonDocument(path, dict)
        self._lock = threading.Lock()
        self._guilds: Dict[str, GuildReminderConfig] = {}
        self._stamp = None
        self._skipped = 0
        self.reload()

    def reload(self) -> bool:
        """Re-read ``settings.json`` if it changed on disk.

        Returns:
            True if the map was reloaded.
        """
        with self._lock:
            if self._stamp is not None and self.document.stamp() == self._stamp:
                return False
            self._load_locked()
            count = len(self._guilds)
        logger.info(f"Loaded settings for {count} guilds")
        return True

    def _load_locked(self) -> None:
        guilds: Dict[str, GuildReminderConfig] = {}
        skipped = 0
        for guild_id, raw in self.document.load().items():
            try:
                guilds[str(guild_id)] = GuildReminderConfig.model_validate(raw)
            except ValidationError as e:
                logger.warning(f"Skipping invalid settings for guild {guild_id}: {e}")
                skipped += 1

        self._guilds = guilds
        self._skipped = skipped
        self._stamp = self.document.stamp()

    def get(self, guild_id: str) -> Optional[GuildReminderConfig]:
        with self._lock:
            config = self._guilds.get(str(guild_id))
            return config.model_copy() if config else None

    def items(self) -> Iterator[Tuple[str, GuildReminderConfig]]:
        with self._lock:
            snapshot = [(gid, cfg.model_copy()) for gid, cfg in self._guilds.items()]
        return iter(snapshot)

    def guild_ids(self):
        with self._lock:
            return list(self._guilds)

    def update(self, guild_id: str, **changes) -> GuildReminderConfig:
        """Apply field changes to one guild and persist the whole map.

        Changes are validated before anything is written; on a write failure
        the in-memory map is left untouched. Changes written by another
        process since the last load are kept.
        """
        unknown = set(changes) - set(GuildReminderConfig.model_fields)
        if unknown:
            raise ValueError(f"Unknown guild settings: {', '.join(sorted(unknown))}")

        guild_id = str(guild_id)
        with self._lock:
            if self.document.stamp() != self._stamp:
                self._load_locked()

            current = self._guilds.get(guild_id) or GuildReminderConfig()
            merged = current.model_dump()
            merged.update(changes)
            updated = GuildReminderConfig.model_validate(merged)

            guilds = dict(self._guilds)
            guilds[guild_id] = updated
            if self._skipped:
                self.document.backup()
            self.document.save({gid: cfg.to_document() for gid, cfg in guilds.items()})
            self._guilds = guilds
            self._skipped = 0
            self._stamp = self.document.stamp()

        logger.info(f"Updated settings for guild {guild_id}: {sorted(changes)}")
        return updated.model_copy()
