"""
Vehicle intake and listing workflow.

Intake puts a vehicle in the review queue (pending). An admin then prices or
completes it, which lists it (active, out of the queue). Removal and
reactivation follow the transition table in domain.vehicle.

Every status change is a conditional update on the status that was read, so
two admins acting on the same vehicle cannot both succeed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields as dataclass_fields
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple

from domain.errors import VehicleErrorKind, WorkflowError
from domain.time import utc_now
from domain.vehicle import (
    CertificationType,
    InspectionStatus,
    Vehicle,
    VehicleAction,
    VehicleStatus,
    next_vehicle_status,
    normalize_vin,
    validate_model_year,
)
from repositories import vehicle_repository
from services.vin_decode_service import VinDecodeError, decode_vin

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class VehicleDetails:
    """
    Descriptive fields an admin may supply when completing or editing a vehicle.

    None means "leave unchanged".
    """
    year: Optional[int] = None
    make: Optional[str] = None
    model: Optional[str] = None
    trim: Optional[str] = None
    mileage: Optional[int] = None
    price: Optional[Decimal] = None
    description: Optional[str] = None
    condition: Optional[CertificationType] = None
    images: Optional[Tuple[str, ...]] = None
    videos: Optional[Tuple[str, ...]] = None

    def as_fields(self) -> Dict[str, Any]:
        values = {f.name: getattr(self, f.name) for f in dataclass_fields(self)}
        return {name: value for name, value in values.items() if value is not None}


def _invalid(message: str) -> WorkflowError:
    return WorkflowError(VehicleErrorKind.INVALID_VALUE, message)


def _validate_details(details: VehicleDetails, now: datetime) -> None:
    if details.year is not None:
        try:
            validate_model_year(details.year, now)
        except ValueError as e:
            raise _invalid(str(e))
    if details.mileage is not None and details.mileage < 0:
        raise _invalid("mileage must be >= 0")
    if details.price is not None and details.price <= 0:
        raise _invalid("price must be > 0")


def _load(vehicle_id: int) -> Vehicle:
    vehicle = vehicle_repository.get_vehicle_by_id(vehicle_id)
    if vehicle is None:
        raise WorkflowError(VehicleErrorKind.VEHICLE_NOT_FOUND, "Vehicle not found")
    return vehicle


def _transition(
    vehicle: Vehicle,
    action: VehicleAction,
    now: datetime,
    changes: Optional[Dict[str, Any]] = None,
) -> Vehicle:
    """Apply `action` to `vehicle` together with extra column changes."""

    try:
        target = next_vehicle_status(vehicle.status, action)
    except ValueError as e:
        raise WorkflowError(VehicleErrorKind.INVALID_TRANSITION, str(e))

    update = dict(changes or {})
    update["status"] = target
    # Every transition leaves the review queue
    update["in_queue"] = False

    updated = vehicle_repository.update_vehicle(
        vehicle.vehicle_id,
        update,
        updated_at=now,
        expected_status=vehicle.status,
    )
    if updated is None:
        raise WorkflowError(
            VehicleErrorKind.CONCURRENT_UPDATE,
            "Vehicle was modified by another request; reload and try again",
        )

    logger.info(
        "Vehicle transitioned",
        extra={
            "vehicle_id": vehicle.vehicle_id,
            "action": action.value,
            "from_status": vehicle.status.value,
            "to_status": target.value,
        },
    )
    return updated


def intake_vehicle(
    vin: str,
    images: Sequence[str] = (),
    videos: Sequence[str] = (),
    now: Optional[datetime] = None,
) -> Vehicle:
    """
    Create a vehicle in the review queue.

    The VIN is decoded through the registry to prefill year/make/model/trim.
    A decode failure is logged and the vehicle is stored without them.

    Raises:
        WorkflowError: INVALID_VIN, or DUPLICATE_VIN when a pending or active
            vehicle already has this VIN
    """
    now = now or utc_now()
    try:
        vin = normalize_vin(vin)
    except ValueError as e:
        raise WorkflowError(VehicleErrorKind.INVALID_VIN, str(e))

    live = [
        v for v in vehicle_repository.list_vehicles_by_vin(vin)
        if v.status in (VehicleStatus.PENDING, VehicleStatus.ACTIVE)
    ]
    if live:
        raise WorkflowError(
            VehicleErrorKind.DUPLICATE_VIN,
            f"A vehicle with VIN {vin} is already {live[0].status.value}",
        )

    fields: Dict[str, Any] = {"images": tuple(images), "videos": tuple(videos)}
    try:
        decoded = decode_vin(vin)
    except VinDecodeError as e:
        logger.warning("Storing vehicle without decoded details", extra={"vin": vin, "error": str(e)})
    else:
        fields.update(decoded.as_vehicle_fields())

    vehicle = vehicle_repository.create_vehicle(vin, now, fields)
    logger.info("Vehicle intake", extra={"vehicle_id": vehicle.vehicle_id, "vin": vin})
    return vehicle


def price_vehicle(vehicle_id: int, price: Decimal, now: Optional[datetime] = None) -> Vehicle:
    """Set the price and list the vehicle."""

    now = now or utc_now()
    if price is None or price <= 0:
        raise _invalid("price must be > 0")
    return _transition(_load(vehicle_id), VehicleAction.PRICE, now, {"price": price})


def complete_vehicle(
    vehicle_id: int,
    details: VehicleDetails,
    now: Optional[datetime] = None,
) -> Vehicle:
    """
    Fill in the listing details and list the vehicle.

    A listed vehicle needs a price and at least one video, taken from
    `details` or from what is already stored.
    """
    now = now or utc_now()
    _validate_details(details, now)
    vehicle = _load(vehicle_id)

    videos = details.videos if details.videos is not None else vehicle.videos
    if not videos:
        raise WorkflowError(VehicleErrorKind.VIDEO_REQUIRED, "At least one video is required")
    if (details.price if details.price is not None else vehicle.price) is None:
        raise WorkflowError(VehicleErrorKind.PRICE_REQUIRED, "A price is required to list the vehicle")

    return _transition(vehicle, VehicleAction.COMPLETE, now, details.as_fields())


def remove_vehicle(vehicle_id: int, now: Optional[datetime] = None) -> Vehicle:
    return _transition(_load(vehicle_id), VehicleAction.REMOVE, now or utc_now())


def reactivate_vehicle(vehicle_id: int, notes: str, now: Optional[datetime] = None) -> Vehicle:
    """Return a sold or removed vehicle to the listing. Notes are mandatory."""

    notes = (notes or "").strip()
    if not notes:
        raise WorkflowError(VehicleErrorKind.NOTES_REQUIRED, "Reactivation notes are required")
    return _transition(
        _load(vehicle_id),
        VehicleAction.REACTIVATE,
        now or utc_now(),
        {"reactivation_notes": notes},
    )


def record_inspection(
    vehicle_id: int,
    status: InspectionStatus,
    fail_reason: Optional[str] = None,
    cosmetic_repair_estimate: Optional[Decimal] = None,
    mechanical_repair_estimate: Optional[Decimal] = None,
    vin_photo: Optional[str] = None,
    walkaround_video: Optional[str] = None,
    mechanical_video: Optional[str] = None,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Vehicle:
    """Store the inspection outcome. Does not change the listing status."""

    now = now or utc_now()
    fail_reason = (fail_reason or "").strip() or None
    if status == InspectionStatus.FAILED and fail_reason is None:
        raise WorkflowError(
            VehicleErrorKind.FAIL_REASON_REQUIRED,
            "A fail reason is required when the inspection failed",
        )
    for label, estimate in (
        ("cosmetic_repair_estimate", cosmetic_repair_estimate),
        ("mechanical_repair_estimate", mechanical_repair_estimate),
    ):
        if estimate is not None and estimate < 0:
            raise _invalid(f"{label} must be >= 0")

    _load(vehicle_id)
    updated = vehicle_repository.update_vehicle(
        vehicle_id,
        {
            "inspection_status": status,
            "fail_reason": fail_reason if status == InspectionStatus.FAILED else None,
            "cosmetic_repair_estimate": cosmetic_repair_estimate,
            "mechanical_repair_estimate": mechanical_repair_estimate,
            "vin_photo": vin_photo,
            "walkaround_video": walkaround_video,
            "mechanical_video": mechanical_video,
            "inspection_notes": notes,
            "inspected_at_utc": now,
        },
        updated_at=now,
    )
    if updated is None:
        raise WorkflowError(VehicleErrorKind.VEHICLE_NOT_FOUND, "Vehicle not found")

    logger.info(
        "Inspection recorded",
        extra={"vehicle_id": vehicle_id, "inspection_status": status.value},
    )
    return updated


def update_vehicle_details(
    vehicle_id: int,
    details: VehicleDetails,
    now: Optional[datetime] = None,
) -> Vehicle:
    """Partial update of descriptive fields; status and queue flag are untouched."""

    now = now or utc_now()
    _validate_details(details, now)
    vehicle = _load(vehicle_id)

    # a listed vehicle keeps at least one video
    if details.videos is not None and not details.videos and vehicle.status == VehicleStatus.ACTIVE:
        raise WorkflowError(VehicleErrorKind.VIDEO_REQUIRED, "A listed vehicle needs at least one video")

    changes = details.as_fields()
    if not changes:
        return vehicle

    updated = vehicle_repository.update_vehicle(vehicle_id, changes, updated_at=now)
    if updated is None:
        raise WorkflowError(VehicleErrorKind.VEHICLE_NOT_FOUND, "Vehicle not found")
    return updated


def get_vehicle(vehicle_id: int) -> Vehicle:
    return _load(vehicle_id)


def list_listed_vehicles(limit: int = 500, offset: int = 0) -> List[Vehicle]:
    """Public listing: active vehicles that have left the review queue."""
    return vehicle_repository.list_vehicles(
        status=VehicleStatus.ACTIVE, in_queue=False, limit=limit, offset=offset
    )


def count_listed_vehicles() -> int:
    return vehicle_repository.count_vehicles(status=VehicleStatus.ACTIVE, in_queue=False)


def list_admin_vehicles(
    status: Optional[VehicleStatus] = None,
    in_queue: Optional[bool] = None,
    limit: int = 500,
    offset: int = 0,
) -> List[Vehicle]:
    return vehicle_repository.list_vehicles(status=status, in_queue=in_queue, limit=limit, offset=offset)


def count_admin_vehicles(status: Optional[VehicleStatus] = None, in_queue: Optional[bool] = None) -> int:
    return vehicle_repository.count_vehicles(status=status, in_queue=in_queue)


def find_vehicles_by_vin(vin: str) -> List[Vehicle]:
    try:
        vin = normalize_vin(vin)
    except ValueError as e:
        raise WorkflowError(VehicleErrorKind.INVALID_VIN, str(e))
    return vehicle_repository.list_vehicles_by_vin(vin)


__all__ = [
    "VehicleDetails",
    "intake_vehicle",
    "price_vehicle",
    "complete_vehicle",
    "remove_vehicle",
    "reactivate_vehicle",
    "record_inspection",
    "update_vehicle_details",
    "get_vehicle",
    "list_listed_vehicles",
    "list_admin_vehicles",
    "count_listed_vehicles",
    "count_admin_vehicles",
    "find_vehicles_by_vin",
]
