from __future__ import annotations

from typing import Iterable, List, Sequence

from loguru import logger

from giftradar.db.code_store import CodeStore
from giftradar.errors import PersistenceWriteError
from giftradar.models.promo_code import CandidateCode, SyncResult
from giftradar.sources.base import BaseSource

NO_CODES_FOUND = "no codes found"


def dedupe_candidates(candidates: Iterable[CandidateCode]) -> List[CandidateCode]:
    """Drop repeated ids, keeping the first occurrence."""
    seen = set()
    unique = []
    for candidate in candidates:
        if candidate.id in seen:
            continue
        seen.add(candidate.id)
        unique.append(candidate)
    return unique


class SyncEngine:
    """Pulls candidates from every source and merges them into the store."""

    def __init__(self, sources: Sequence[BaseSource], store: CodeStore):
        self.sources = list(sources)
        self.store = store

    def collect(self) -> List[CandidateCode]:
        candidates: List[CandidateCode] = []
        for source in self.sources:
            candidates.extend(source.fetch())

        unique = dedupe_candidates(candidates)
        logger.info(f"Found a total of {len(unique)} unique promotional codes")
        return unique

    def sync_once(self) -> SyncResult:
        candidates = self.collect()
        if not candidates:
            logger.warning("Synchronization found no codes on any source")
            return SyncResult(failure_reason=NO_CODES_FOUND)

        try:
            delta = self.store.merge(candidates)
        except PersistenceWriteError as e:
            logger.error(f"Synchronization could not save codes: {e}")
            return SyncResult(failure_reason=f"store write failed: {e}")

        if not delta.added_codes:
            logger.info("All codes are already added")
        else:
            logger.info(f"Added {len(delta.added_codes)} new promotional codes")

        return SyncResult(added=len(delta.added_codes), new_codes=delta.added_codes)
