"""
Domain: Offers and counter offers.

A dealer offers an amount for an active vehicle. The admin accepts, declines
or counters it; a countered offer is accepted or declined by the dealer. Any
non-terminal offer expires once its expires_at passes.

State machine (actor, from, action -> to):
- admin,  pending,   accept  -> accepted
- admin,  pending,   decline -> declined
- admin,  pending,   counter -> countered
- dealer, countered, accept  -> accepted
- dealer, countered, decline -> declined
- system, pending|countered, expire -> expired

accepted, declined and expired are terminal. The activity trail is
append-only and ordered by creation time.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple

from .time import require_utc_timestamp


class OfferStatus(str, Enum):
    PENDING = "pending"
    COUNTERED = "countered"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    EXPIRED = "expired"


TERMINAL_OFFER_STATUSES = frozenset(
    {OfferStatus.ACCEPTED, OfferStatus.DECLINED, OfferStatus.EXPIRED}
)


class OfferActor(str, Enum):
    ADMIN = "admin"
    DEALER = "dealer"
    SYSTEM = "system"


class OfferAction(str, Enum):
    ACCEPT = "accept"
    DECLINE = "decline"
    COUNTER = "counter"
    EXPIRE = "expire"


_TRANSITIONS: dict[tuple[OfferActor, OfferStatus, OfferAction], OfferStatus] = {
    (OfferActor.ADMIN, OfferStatus.PENDING, OfferAction.ACCEPT): OfferStatus.ACCEPTED,
    (OfferActor.ADMIN, OfferStatus.PENDING, OfferAction.DECLINE): OfferStatus.DECLINED,
    (OfferActor.ADMIN, OfferStatus.PENDING, OfferAction.COUNTER): OfferStatus.COUNTERED,
    (OfferActor.DEALER, OfferStatus.COUNTERED, OfferAction.ACCEPT): OfferStatus.ACCEPTED,
    (OfferActor.DEALER, OfferStatus.COUNTERED, OfferAction.DECLINE): OfferStatus.DECLINED,
    (OfferActor.SYSTEM, OfferStatus.PENDING, OfferAction.EXPIRE): OfferStatus.EXPIRED,
    (OfferActor.SYSTEM, OfferStatus.COUNTERED, OfferAction.EXPIRE): OfferStatus.EXPIRED,
}


class InvalidOfferTransition(ValueError):
    """Raised when an actor attempts an action the state machine does not allow."""

    def __init__(self, actor: OfferActor, current: OfferStatus, action: OfferAction) -> None:
        self.actor = actor
        self.current = current
        self.action = action
        super().__init__(
            f"{actor.value} cannot {action.value} an offer that is {current.value}"
        )


def next_offer_status(actor: OfferActor, current: OfferStatus, action: OfferAction) -> OfferStatus:
    try:
        return _TRANSITIONS[(actor, current, action)]
    except KeyError:
        raise InvalidOfferTransition(actor, current, action) from None


def format_amount(amount: Decimal) -> str:
    return f"${amount:,.2f}"


@dataclass(frozen=True, slots=True)
class OfferActivity:
    """One entry of an offer's activity trail."""

    activity_id: int
    offer_id: int
    actor: OfferActor
    message: str
    created_at: datetime

    def __post_init__(self) -> None:
        require_utc_timestamp("created_at", self.created_at)


@dataclass(frozen=True, slots=True)
class Offer:
    offer_id: int
    vehicle_id: int
    dealer_id: int
    amount: Decimal
    status: OfferStatus
    created_at: datetime
    expires_at: Optional[datetime] = None
    counter_amount: Optional[Decimal] = None
    counter_message: Optional[str] = None
    updated_at: Optional[datetime] = None
    activities: Tuple[OfferActivity, ...] = ()

    def __post_init__(self) -> None:
        if self.amount <= 0:
            raise ValueError("amount must be > 0")
        if self.status == OfferStatus.PENDING and (
            self.counter_amount is not None or self.counter_message is not None
        ):
            raise ValueError("a pending offer cannot carry counter terms")
        require_utc_timestamp("created_at", self.created_at)
        if self.expires_at is not None:
            require_utc_timestamp("expires_at", self.expires_at)
        if self.updated_at is not None:
            require_utc_timestamp("updated_at", self.updated_at)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_OFFER_STATUSES

    def is_expired(self, now: datetime) -> bool:
        """True when the offer is still open but its deadline has passed."""
        require_utc_timestamp("now", now)
        return (
            not self.is_terminal
            and self.expires_at is not None
            and now >= self.expires_at
        )

    @property
    def agreed_amount(self) -> Optional[Decimal]:
        """Price both sides agreed on, once accepted."""
        if self.status != OfferStatus.ACCEPTED:
            return None
        return self.counter_amount if self.counter_amount is not None else self.amount
