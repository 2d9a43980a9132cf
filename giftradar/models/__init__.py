from giftradar.models.guild_config import GuildReminderConfig, ReminderKind, StartFrom
from giftradar.models.promo_code import (
    CandidateCode,
    PromoCode,
    SyncDelta,
    SyncResult,
    VerificationResult,
    VerifyReason,
)

__all__ = [
    "CandidateCode",
    "GuildReminderConfig",
    "PromoCode",
    "ReminderKind",
    "StartFrom",
    "SyncDelta",
    "SyncResult",
    "VerificationResult",
    "VerifyReason",
]
