from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from giftradar.models.base import ensure_utc


class PromoCode(BaseModel):
    """A known promotional code.

    Stored with the keys the bot has always used on disk (``code``,
    ``validUntil``), so existing ``codes.json`` files load unchanged.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(alias="code")
    description: str = ""
    rewards: str = ""
    valid_until: datetime = Field(alias="validUntil")

    @field_validator("valid_until")
    @classmethod
    def _valid_until_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    def is_expired(self, now: datetime) -> bool:
        return self.valid_until < now

    def to_document(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


@dataclass
class CandidateCode:
    """An unvalidated code parsed from an external source."""

    id: str
    description: str
    rewards: str
    valid_until: datetime

    def to_promo_code(self) -> PromoCode:
        return PromoCode(
            id=self.id,
            description=self.description,
            rewards=self.rewards,
            valid_until=self.valid_until,
        )


@dataclass
class SyncDelta:
    added_codes: List[PromoCode] = field(default_factory=list)


@dataclass
class SyncResult:
    added: int = 0
    new_codes: List[PromoCode] = field(default_factory=list)
    failure_reason: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.failure_reason is None


class VerifyReason(enum.Enum):
    not_found = "NotFound"
    expired = "Expired"


@dataclass
class VerificationResult:
    valid: bool
    reason: Optional[VerifyReason] = None
    code: Optional[PromoCode] = None
