"""
Vehicle repository (persistence).

Reads and writes vehicle listings. Status changes go through
`update_vehicle(..., expected_status=...)`, which only matches the row while it
still has the status the caller based its decision on (compare-and-set).
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional

from domain.time import parse_optional_utc_datetime, to_iso_utc
from domain.vehicle import (
    CertificationType,
    Inspection,
    InspectionStatus,
    Vehicle,
    VehicleStatus,
)
from repositories.client import check_response, get_supabase

_VEHICLES_TABLE: str = "vehicles"

WRITABLE_COLUMNS = frozenset({
    "status",
    "in_queue",
    "year",
    "make",
    "model",
    "trim",
    "mileage",
    "price",
    "description",
    "condition",
    "images",
    "videos",
    "inspection_status",
    "fail_reason",
    "cosmetic_repair_estimate",
    "mechanical_repair_estimate",
    "vin_photo",
    "walkaround_video",
    "mechanical_video",
    "inspection_notes",
    "inspected_at_utc",
    "reactivation_notes",
})


def _decimal_or_none(value: Any) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    return Decimal(str(value))


def _serialize(column: str, value: Any) -> Any:
    """Convert domain values into JSON-friendly column values."""

    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return to_iso_utc(value, name=column)
    if isinstance(value, tuple):
        return list(value)
    return value


def _row_to_vehicle(row: Mapping[str, Any]) -> Vehicle:
    """Convert a Supabase row into a Vehicle."""

    condition = row.get("condition")
    year = row.get("year")
    mileage = row.get("mileage")

    inspection = Inspection(
        status=InspectionStatus(row.get("inspection_status") or InspectionStatus.PENDING.value),
        fail_reason=row.get("fail_reason"),
        cosmetic_repair_estimate=_decimal_or_none(row.get("cosmetic_repair_estimate")),
        mechanical_repair_estimate=_decimal_or_none(row.get("mechanical_repair_estimate")),
        vin_photo=row.get("vin_photo"),
        walkaround_video=row.get("walkaround_video"),
        mechanical_video=row.get("mechanical_video"),
        notes=row.get("inspection_notes"),
        inspected_at=parse_optional_utc_datetime(row.get("inspected_at_utc")),
    )

    return Vehicle(
        vehicle_id=int(row["vehicle_id"]),
        vin=str(row["vin"]),
        status=VehicleStatus(str(row["status"])),
        in_queue=bool(row.get("in_queue", True)),
        year=int(year) if year is not None else None,
        make=row.get("make"),
        model=row.get("model"),
        trim=row.get("trim"),
        mileage=int(mileage) if mileage is not None else None,
        price=_decimal_or_none(row.get("price")),
        description=row.get("description"),
        condition=CertificationType(condition) if condition else None,
        images=tuple(row.get("images") or ()),
        videos=tuple(row.get("videos") or ()),
        inspection=inspection,
        reactivation_notes=row.get("reactivation_notes"),
        created_at=parse_optional_utc_datetime(row.get("created_at_utc")),
        updated_at=parse_optional_utc_datetime(row.get("updated_at_utc")),
    )


def get_vehicle_by_id(vehicle_id: int) -> Optional[Vehicle]:
    """
    Retrieve a vehicle by ID.

    Returns:
        Vehicle or None if not found
    """

    response = (
        get_supabase().table(_VEHICLES_TABLE)
        .select("*")
        .eq("vehicle_id", vehicle_id)
        .limit(1)
        .execute()
    )
    rows = check_response(response, "get vehicle")
    return _row_to_vehicle(rows[0]) if rows else None


def list_vehicles_by_vin(vin: str) -> List[Vehicle]:
    """All vehicles ever recorded with this VIN, newest first."""

    response = (
        get_supabase().table(_VEHICLES_TABLE)
        .select("*")
        .eq("vin", vin)
        .order("vehicle_id", desc=True)
        .execute()
    )
    rows = check_response(response, "list vehicles by VIN")
    return [_row_to_vehicle(row) for row in rows]


def list_vehicles_by_vins(vins: Iterable[str]) -> List[Vehicle]:
    """Vehicles matching any of the given VINs (used by the sheet import)."""

    vin_list = sorted(set(vins))
    if not vin_list:
        return []

    response = (
        get_supabase().table(_VEHICLES_TABLE)
        .select("*")
        .in_("vin", vin_list)
        .execute()
    )
    rows = check_response(response, "list vehicles by VIN")
    return [_row_to_vehicle(row) for row in rows]


def list_vehicles(
    status: Optional[VehicleStatus] = None,
    in_queue: Optional[bool] = None,
    limit: int = 500,
    offset: int = 0,
) -> List[Vehicle]:
    """
    Query vehicles with optional filters, newest first.

    Args:
        status: Only vehicles with this status
        in_queue: Only vehicles in (True) or out of (False) the review queue
        limit: Maximum number of results
        offset: Pagination offset
    """

    query = get_supabase().table(_VEHICLES_TABLE).select("*")
    if status is not None:
        query = query.eq("status", status.value)
    if in_queue is not None:
        query = query.eq("in_queue", in_queue)

    response = (
        query.order("created_at_utc", desc=True)
        .range(offset, offset + limit - 1)
        .execute()
    )
    rows = check_response(response, "list vehicles")
    return [_row_to_vehicle(row) for row in rows]


def count_vehicles(status: Optional[VehicleStatus] = None, in_queue: Optional[bool] = None) -> int:
    """Number of vehicles matching the same filters as list_vehicles."""
    query = get_supabase().table(_VEHICLES_TABLE).select("vehicle_id", count="exact")
    if status is not None:
        query = query.eq("status", status.value)
    if in_queue is not None:
        query = query.eq("in_queue", in_queue)

    response = query.limit(1).execute()
    check_response(response, "count vehicles")
    return getattr(response, "count", 0) or 0


def create_vehicle(
    vin: str,
    created_at: datetime,
    fields: Optional[Mapping[str, Any]] = None,
) -> Vehicle:
    """
    Insert a new vehicle in the review queue (status=pending, in_queue=True).

    Args:
        vin: Normalized 17-character VIN
        created_at: UTC timestamp of intake
        fields: Optional descriptive columns (year, make, images, ...)

    Returns:
        Created Vehicle
    """

    fields = dict(fields or {})
    unknown = set(fields) - WRITABLE_COLUMNS
    if unknown:
        raise ValueError(f"Cannot set vehicle columns: {sorted(unknown)}")

    created_iso = to_iso_utc(created_at, name="created_at")
    payload: dict[str, Any] = {column: _serialize(column, value) for column, value in fields.items()}
    payload.update({
        "vin": vin,
        "status": VehicleStatus.PENDING.value,
        "in_queue": True,
        "inspection_status": payload.get("inspection_status", InspectionStatus.PENDING.value),
        "created_at_utc": created_iso,
        "updated_at_utc": created_iso,
    })

    response = get_supabase().table(_VEHICLES_TABLE).insert(payload).execute()
    rows = check_response(response, "create vehicle")
    return _row_to_vehicle(rows[0])


def update_vehicle(
    vehicle_id: int,
    fields: Mapping[str, Any],
    updated_at: datetime,
    expected_status: Optional[VehicleStatus] = None,
) -> Optional[Vehicle]:
    """
    Apply a partial update to a vehicle.

    If `expected_status` is given, the update only applies while the row still
    has that status.

    Returns:
        Updated Vehicle, or None if no row matched (missing vehicle or the
        status changed underneath the caller)
    """

    unknown = set(fields) - WRITABLE_COLUMNS
    if unknown:
        raise ValueError(f"Cannot set vehicle columns: {sorted(unknown)}")

    payload = {column: _serialize(column, value) for column, value in fields.items()}
    payload["updated_at_utc"] = to_iso_utc(updated_at, name="updated_at")

    query = (
        get_supabase().table(_VEHICLES_TABLE)
        .update(payload)
        .eq("vehicle_id", vehicle_id)
    )
    if expected_status is not None:
        query = query.eq("status", expected_status.value)

    rows = check_response(query.execute(), "update vehicle")
    return _row_to_vehicle(rows[0]) if rows else None


__all__ = [
    "get_vehicle_by_id",
    "list_vehicles_by_vin",
    "list_vehicles_by_vins",
    "list_vehicles",
    "count_vehicles",
    "create_vehicle",
    "update_vehicle",
]
