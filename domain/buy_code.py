"""
Domain: Buy codes.

A buy code is a dealer-specific redemption token. Redeeming it against a
vehicle converts that vehicle into a sale for the owning dealer.

Rules implemented here:
- A code may be used at most `max_uses` times (None means unlimited).
- usage_count never exceeds max_uses.
- A code is expired once `now >= expires_at`, regardless of `active`.
- Rejections are checked in a fixed order: inactive, exhausted, expired.

This module is pure: no I/O. All timestamps must be passed explicitly.
"""

from __future__ import annotations

import secrets
import string
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .errors import RedemptionErrorKind
from .time import require_utc_timestamp

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 8


def generate_code(length: int = CODE_LENGTH) -> str:
    """Random uppercase alphanumeric code suitable for reading over the phone."""
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def normalize_code(code: str) -> str:
    return code.strip().upper()


@dataclass(frozen=True, slots=True)
class BuyCode:
    """
    Immutable snapshot of a buy code row.

    Mutations (usage increment, active toggle) happen in the database; callers
    re-read the row to observe them.
    """

    buy_code_id: int
    code: str
    dealer_id: int
    active: bool
    usage_count: int = 0
    max_uses: Optional[int] = None
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.usage_count < 0:
            raise ValueError("usage_count must be >= 0")
        if self.max_uses is not None:
            if self.max_uses < 1:
                raise ValueError("max_uses must be >= 1 when set")
            if self.usage_count > self.max_uses:
                raise ValueError("usage_count must not exceed max_uses")
        if self.expires_at is not None:
            require_utc_timestamp("expires_at", self.expires_at)
        if self.created_at is not None:
            require_utc_timestamp("created_at", self.created_at)

    @property
    def remaining_uses(self) -> Optional[int]:
        """Uses left before exhaustion, or None when unlimited."""
        if self.max_uses is None:
            return None
        return self.max_uses - self.usage_count

    def is_exhausted(self) -> bool:
        return self.max_uses is not None and self.usage_count >= self.max_uses

    def is_expired(self, now: datetime) -> bool:
        require_utc_timestamp("now", now)
        return self.expires_at is not None and now >= self.expires_at

    def rejection_reason(self, now: datetime) -> Optional[RedemptionErrorKind]:
        """
        First reason this code cannot be redeemed at `now`, or None if usable.

        Order matters: callers report only the first failing check.
        """
        if not self.active:
            return RedemptionErrorKind.CODE_INACTIVE
        if self.is_exhausted():
            return RedemptionErrorKind.CODE_EXHAUSTED
        if self.is_expired(now):
            return RedemptionErrorKind.CODE_EXPIRED
        return None
