"""Exception types shared by the store, fetchers and schedulers."""
from __future__ import annotations


class GiftRadarError(Exception):
    """Base class for all giftradar errors."""


class ChannelNotConfiguredError(GiftRadarError):
    def __init__(self, guild_id: str, kind: str):
        super().__init__(f"No {kind} channel configured for guild {guild_id}")
        self.guild_id = guild_id
        self.kind = kind


class CodeAlreadyExistsError(GiftRadarError):
    def __init__(self, code_id: str, existing=None):
        super().__init__(f"Code already exists: {code_id}")
        self.code_id = code_id
        self.existing = existing


class SourceUnavailableError(GiftRadarError):
    """A code source could not be retrieved or parsed."""

    def __init__(self, source: str, reason: str):
        super().__init__(f"{source}: {reason}")
        self.source = source
        self.reason = reason


class PersistenceCorruptError(GiftRadarError):
    """A JSON document on disk could not be decoded."""

    def __init__(self, path, reason: str):
        super().__init__(f"Corrupt data file {path}: {reason}")
        self.path = path


class PersistenceWriteError(GiftRadarError):
    """A JSON document could not be written; the previous file is untouched."""

    def __init__(self, path, reason: str):
        super().__init__(f"Failed to write {path}: {reason}")
        self.path = path
