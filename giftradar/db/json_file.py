"""Single JSON document persistence with atomic writes and corrupt-file recovery."""
from __future__ import annotations

import json
import os
import shutil
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Optional, Tuple, Union

from loguru import logger

from giftradar.errors import PersistenceCorruptError, PersistenceWriteError


class JsonDocument:
    """One JSON document on disk.

    ``default_factory`` produces the empty document (``list`` or ``dict``); a
    file whose top-level type differs is treated as corrupt.
    """

    def __init__(self, path: Union[str, Path], default_factory: Callable[[], Any]):
        self.path = Path(path)
        self.default_factory = default_factory

    def stamp(self) -> Optional[Tuple[int, int, int]]:
        """Identity of the file on disk; changes with every write, ours or not."""
        try:
            stat = self.path.stat()
        except FileNotFoundError:
            return None
        # os.replace gives each write a new inode
        return (stat.st_ino, stat.st_mtime_ns, stat.st_size)

    def read(self) -> Any:
        """Read and decode the document, raising on corruption."""
        try:
            raw_bytes = self.path.read_bytes()
        except FileNotFoundError:
            return self.default_factory()

        try:
            raw = raw_bytes.decode("utf-8")
        except UnicodeDecodeError as e:
            raise PersistenceCorruptError(self.path, f"not valid UTF-8: {e}") from e

        if not raw.strip():
            return self.default_factory()

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise PersistenceCorruptError(self.path, str(e)) from e

        expected = type(self.default_factory())
        if not isinstance(data, expected):
            raise PersistenceCorruptError(
                self.path, f"expected {expected.__name__}, got {type(data).__name__}"
            )
        return data

    def load(self) -> Any:
        """Load the document, creating it if missing and resetting it if corrupt."""
        if not self.path.exists():
            data = self.default_factory()
            self.save(data)
            logger.info(f"Created empty data file {self.path}")
            return data

        try:
            return self.read()
        except PersistenceCorruptError as e:
            logger.error(f"{e}")
            self.backup()
            data = self.default_factory()
            self.save(data)
            logger.warning(f"Reset {self.path} to an empty document")
            return data

    def backup(self) -> Optional[Path]:
        """Copy the current file aside as ``<name>.backup-<timestamp>``."""
        stamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S%f")
        backup_path = self.path.with_name(f"{self.path.name}.backup-{stamp}")
        try:
            shutil.copy2(self.path, backup_path)
        except OSError as e:
            logger.error(f"Failed to back up {self.path}: {e}")
            return None
        logger.info(f"Created backup of corrupted data file at {backup_path}")
        return backup_path

    def save(self, data: Any) -> None:
        """Write the whole document atomically (temp file + rename)."""
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except (OSError, TypeError, ValueError) as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise PersistenceWriteError(self.path, str(e)) from e
