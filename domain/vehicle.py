"""
Domain: Vehicle listings.

Lifecycle:
- Intake creates a vehicle with status=pending and in_queue=True.
- Pricing or completing a queued vehicle moves it to active and out of the queue.
- Redemption of a buy code marks it sold (done atomically in the database).
- Removal moves a pending/active vehicle to removed.
- Reactivation returns a sold/removed vehicle to active; it requires notes.

A sold vehicle is never redeemable again.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple

from .errors import RedemptionErrorKind
from .time import require_utc_timestamp

VIN_LENGTH = 17
# VINs never contain I, O or Q
_VIN_PATTERN = re.compile(r"^[A-HJ-NPR-Z0-9]{17}$")

MIN_MODEL_YEAR = 1900


class VehicleStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    SOLD = "sold"
    REMOVED = "removed"


class InspectionStatus(str, Enum):
    PENDING = "pending"
    PASSED = "passed"
    FAILED = "failed"


class CertificationType(str, Enum):
    DEAL_MACHINE = "Deal Machine Certified"
    AUCTION = "Auction Certified"


class VehicleAction(str, Enum):
    PRICE = "price"
    COMPLETE = "complete"
    REMOVE = "remove"
    REACTIVATE = "reactivate"


# action -> (allowed source statuses, target status)
_TRANSITIONS: dict[VehicleAction, tuple[frozenset[VehicleStatus], VehicleStatus]] = {
    VehicleAction.PRICE: (
        frozenset({VehicleStatus.PENDING, VehicleStatus.ACTIVE}),
        VehicleStatus.ACTIVE,
    ),
    VehicleAction.COMPLETE: (
        frozenset({VehicleStatus.PENDING, VehicleStatus.ACTIVE}),
        VehicleStatus.ACTIVE,
    ),
    VehicleAction.REMOVE: (
        frozenset({VehicleStatus.PENDING, VehicleStatus.ACTIVE}),
        VehicleStatus.REMOVED,
    ),
    VehicleAction.REACTIVATE: (
        frozenset({VehicleStatus.SOLD, VehicleStatus.REMOVED}),
        VehicleStatus.ACTIVE,
    ),
}


def next_vehicle_status(current: VehicleStatus, action: VehicleAction) -> VehicleStatus:
    """Target status for `action`; raises ValueError if not allowed from `current`."""

    allowed, target = _TRANSITIONS[action]
    if current not in allowed:
        raise ValueError(f"Cannot {action.value} a vehicle that is {current.value}")
    return target


def normalize_vin(vin: str) -> str:
    """
    Uppercase and validate a VIN.

    Raises ValueError for anything other than 17 characters from the VIN
    alphabet.
    """
    text = (vin or "").strip().upper()
    if len(text) != VIN_LENGTH:
        raise ValueError(f"VIN must be {VIN_LENGTH} characters")
    if not _VIN_PATTERN.match(text):
        raise ValueError("VIN contains invalid characters (I, O and Q are not allowed)")
    return text


def validate_model_year(year: int, now: datetime) -> None:
    if not (MIN_MODEL_YEAR <= year <= now.year + 1):
        raise ValueError(f"year must be between {MIN_MODEL_YEAR} and {now.year + 1}")


@dataclass(frozen=True, slots=True)
class Inspection:
    """Result of the physical inspection recorded by an admin."""

    status: InspectionStatus = InspectionStatus.PENDING
    fail_reason: Optional[str] = None
    cosmetic_repair_estimate: Optional[Decimal] = None
    mechanical_repair_estimate: Optional[Decimal] = None
    vin_photo: Optional[str] = None
    walkaround_video: Optional[str] = None
    mechanical_video: Optional[str] = None
    notes: Optional[str] = None
    inspected_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.status == InspectionStatus.FAILED and not (self.fail_reason or "").strip():
            raise ValueError("fail_reason is required when the inspection failed")
        for name in ("cosmetic_repair_estimate", "mechanical_repair_estimate"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ValueError(f"{name} must be >= 0")
        if self.inspected_at is not None:
            require_utc_timestamp("inspected_at", self.inspected_at)


@dataclass(frozen=True, slots=True)
class Vehicle:
    vehicle_id: int
    vin: str
    status: VehicleStatus
    in_queue: bool

    year: Optional[int] = None
    make: Optional[str] = None
    model: Optional[str] = None
    trim: Optional[str] = None
    mileage: Optional[int] = None
    price: Optional[Decimal] = None
    description: Optional[str] = None
    condition: Optional[CertificationType] = None
    images: Tuple[str, ...] = ()
    videos: Tuple[str, ...] = ()

    inspection: Inspection = field(default_factory=Inspection)
    reactivation_notes: Optional[str] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.mileage is not None and self.mileage < 0:
            raise ValueError("mileage must be >= 0")
        if self.price is not None and self.price <= 0:
            raise ValueError("price must be > 0")
        if self.created_at is not None:
            require_utc_timestamp("created_at", self.created_at)
        if self.updated_at is not None:
            require_utc_timestamp("updated_at", self.updated_at)

    @property
    def title(self) -> str:
        parts = [str(self.year) if self.year else None, self.make, self.model, self.trim]
        return " ".join(p for p in parts if p) or self.vin

    @property
    def is_listed(self) -> bool:
        """Visible in the public listing."""
        return self.status == VehicleStatus.ACTIVE and not self.in_queue

    def accepts_offers(self) -> bool:
        return self.is_listed

    def redemption_rejection(self) -> Optional[RedemptionErrorKind]:
        """Reason a buy code cannot be redeemed against this vehicle, or None."""
        if self.status == VehicleStatus.SOLD:
            return RedemptionErrorKind.VEHICLE_UNAVAILABLE
        # The transaction amount is the vehicle price
        if self.price is None:
            return RedemptionErrorKind.VEHICLE_UNAVAILABLE
        return None
