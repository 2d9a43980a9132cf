from __future__ import annotations

from giftradar.db.code_store import CodeStore
from giftradar.models.base import Clock, utc_now
from giftradar.models.promo_code import VerificationResult, VerifyReason


class VerificationEngine:
    """Derives a code's current validity from the store and the clock."""

    def __init__(self, store: CodeStore, clock: Clock = utc_now):
        self.store = store
        self.clock = clock

    def verify(self, code_id: str) -> VerificationResult:
        code = self.store.find_by_id(code_id)
        if code is None:
            return VerificationResult(valid=False, reason=VerifyReason.not_found)

        if code.is_expired(self.clock()):
            return VerificationResult(valid=False, reason=VerifyReason.expired, code=code)

        return VerificationResult(valid=True, code=code)
