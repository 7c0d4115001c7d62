"""
Domain: Dealer (buyer) accounts.

Represents dealerships that hold buy codes and submit offers. Each dealer has
separate primary, billing and title contacts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from .time import require_utc_timestamp


@dataclass(frozen=True, slots=True)
class ContactPerson:
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Dealer:
    """
    Dealer account with login identity and status.

    The password hash is not part of this entity; only the
    repository's credential lookup returns it.
    """

    dealer_id: int
    username: str
    dealer_name: str
    email: str
    active: bool = True

    # Optional profile information
    address: Optional[str] = None
    contact_name: Optional[str] = None
    phone: Optional[str] = None
    billing_contact: ContactPerson = field(default_factory=ContactPerson)
    title_contact: ContactPerson = field(default_factory=ContactPerson)

    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        """Validate timestamps are UTC-aware."""
        if self.created_at is not None:
            require_utc_timestamp("created_at", self.created_at)

    def is_active(self) -> bool:
        return self.active

    def can_redeem(self) -> bool:
        """Inactive dealers cannot use buy codes or submit offers."""
        return self.is_active()
