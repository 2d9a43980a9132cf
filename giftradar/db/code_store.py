from __future__ import annotations

import threading
from datetime import timedelta
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from loguru import logger
from pydantic import ValidationError

from giftradar.db.json_file import JsonDocument
from giftradar.errors import CodeAlreadyExistsError
from giftradar.models.base import Clock, utc_now
from giftradar.models.promo_code import CandidateCode, PromoCode, SyncDelta

DEFAULT_REWARDS = "Reward for promotional code"


class CodeStore:
    """Persisted collection of every promotional code ever seen.

    Codes are never removed; expiry is derived from ``valid_until``. Every
    mutation rewrites the whole snapshot and only updates the in-memory view
    once the write has succeeded.

    The file may be written by other processes (the CLI next to a running
    ``serve``), so the snapshot is re-read whenever the file changed on disk
    before it is queried or rewritten.
    """

    def __init__(
        self,
        path: Union[str, Path],
        clock: Clock = utc_now,
        manual_validity_days: int = 7,
    ):
        self.document = JsonDocument(path, list)
        self.clock = clock
        self.manual_validity_days = manual_validity_days
        self._lock = threading.Lock()
        self._codes: List[PromoCode] = []
        self._stamp = None
        # Entries dropped on the last load; the file is backed up before they are overwritten
        self._skipped = 0
        self.reload()

    def reload(self) -> None:
        """Re-read the snapshot from disk, skipping malformed entries."""
        with self._lock:
            self._load_locked()
        logger.info(f"Loaded {len(self._codes)} promotional codes from {self.document.path}")

    def _refresh_locked(self) -> None:
        if self.document.stamp() != self._stamp:
            self._load_locked()

    def _load_locked(self) -> None:
        codes: List[PromoCode] = []
        seen = set()
        skipped = 0
        for entry in self.document.load():
            try:
                code = PromoCode.model_validate(entry)
            except ValidationError as e:
                logger.warning(f"Skipping malformed code entry {entry!r}: {e}")
                skipped += 1
                continue
            if code.id in seen:
                logger.warning(f"Skipping duplicate entry for code {code.id}")
                skipped += 1
                continue
            seen.add(code.id)
            codes.append(code)

        self._codes = codes
        self._skipped = skipped
        self._stamp = self.document.stamp()

    def all(self) -> List[PromoCode]:
        with self._lock:
            self._refresh_locked()
            return list(self._codes)

    def find_by_id(self, code_id: str) -> Optional[PromoCode]:
        with self._lock:
            self._refresh_locked()
            return self._index().get(code_id)

    def exists(self, code_id: str) -> bool:
        return self.find_by_id(code_id) is not None

    def add(
        self,
        code_id: str,
        description: str = "",
        rewards: str = DEFAULT_REWARDS,
    ) -> PromoCode:
        """Add a code by hand; it stays valid for ``manual_validity_days``."""
        if not code_id or not code_id.strip():
            raise ValueError("Code cannot be empty")
        code_id = code_id.strip()

        with self._lock:
            self._refresh_locked()
            existing = self._index().get(code_id)
            if existing is not None:
                raise CodeAlreadyExistsError(code_id, existing)

            code = PromoCode(
                id=code_id,
                description=description or f"Promotional code: {code_id}",
                rewards=rewards,
                valid_until=self.clock() + timedelta(days=self.manual_validity_days),
            )
            self._write(self._codes + [code])

        logger.info(f"Added promotional code {code_id}")
        return code

    def merge(self, candidates: Iterable[CandidateCode]) -> SyncDelta:
        """Append every candidate whose id is not stored yet, in one write."""
        with self._lock:
            self._refresh_locked()
            known = set(self._index())
            added: List[PromoCode] = []
            for candidate in candidates:
                if candidate.id in known:
                    continue
                known.add(candidate.id)
                added.append(candidate.to_promo_code())

            if added:
                self._write(self._codes + added)

        if added:
            logger.info(f"Merged {len(added)} new promotional codes")
        return SyncDelta(added_codes=added)

    def _index(self) -> Dict[str, PromoCode]:
        return {code.id: code for code in self._codes}

    def _write(self, codes: List[PromoCode]) -> None:
        if self._skipped:
            self.document.backup()
        self.document.save([code.to_document() for code in codes])
        self._codes = codes
        self._skipped = 0
        self._stamp = self.document.stamp()
