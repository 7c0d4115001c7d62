"""
Vehicles API Endpoints.

Public listing plus the admin intake / pricing / inspection workflow.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import require_admin
from api.models import (
    InspectionRequest,
    ReactivateRequest,
    SheetSyncResponse,
    VehicleDetailsRequest,
    VehicleIntakeRequest,
    VehicleListResponse,
    VehiclePriceRequest,
    VehicleResponse,
)
from domain.vehicle import VehicleStatus
from services import vehicle_service
from services.sheet_sync_service import sync_vehicles_from_sheet

router = APIRouter()


def _details(request: VehicleDetailsRequest) -> vehicle_service.VehicleDetails:
    return vehicle_service.VehicleDetails(
        year=request.year,
        make=request.make,
        model=request.model,
        trim=request.trim,
        mileage=request.mileage,
        price=request.price,
        description=request.description,
        condition=request.condition,
        images=tuple(request.images) if request.images is not None else None,
        videos=tuple(request.videos) if request.videos is not None else None,
    )


def _listing(vehicles, total_count: Optional[int] = None) -> VehicleListResponse:
    items = [VehicleResponse.from_domain(v) for v in vehicles]
    return VehicleListResponse(items=items, total_count=len(items) if total_count is None else total_count)


@router.get(
    "/vehicles",
    response_model=VehicleListResponse,
    summary="List Vehicles",
    description="Active vehicles that have been priced and left the review queue."
)
def list_vehicles(
    limit: int = Query(100, ge=1, le=500, description="Maximum number of results to return"),
    offset: int = Query(0, ge=0),
):
    """
    **Example usage:**
    - First page: `GET /api/vehicles`
    - Next page: `GET /api/vehicles?offset=100`
    """
    return _listing(
        vehicle_service.list_listed_vehicles(limit=limit, offset=offset),
        vehicle_service.count_listed_vehicles(),
    )


@router.get(
    "/admin/vehicles",
    response_model=VehicleListResponse,
    summary="List Vehicles (Admin)",
    dependencies=[Depends(require_admin)],
)
def list_admin_vehicles(
    status: Optional[VehicleStatus] = Query(None, description="Filter by status"),
    in_queue: Optional[bool] = Query(None, alias="inQueue", description="Filter by review queue flag"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
):
    return _listing(
        vehicle_service.list_admin_vehicles(status=status, in_queue=in_queue, limit=limit, offset=offset),
        vehicle_service.count_admin_vehicles(status=status, in_queue=in_queue),
    )


@router.get(
    "/vehicles/vin/{vin}",
    response_model=VehicleListResponse,
    summary="Find Vehicles by VIN",
    dependencies=[Depends(require_admin)],
)
def find_by_vin(vin: str):
    return _listing(vehicle_service.find_vehicles_by_vin(vin))


@router.get(
    "/vehicles/{vehicle_id}",
    response_model=VehicleResponse,
    summary="Get Vehicle",
)
def get_vehicle(vehicle_id: int):
    return VehicleResponse.from_domain(vehicle_service.get_vehicle(vehicle_id))


@router.post(
    "/vehicles",
    response_model=VehicleResponse,
    status_code=201,
    summary="Vehicle Intake",
    description="Create a vehicle in the review queue. The VIN is decoded to prefill year/make/model/trim.",
    dependencies=[Depends(require_admin)],
)
def intake_vehicle(request: VehicleIntakeRequest):
    """
    **Example request:**
    ```json
    {"vin": "1HGCM82633A004352", "images": ["https://.../front.jpg"]}
    ```
    Responds 409 when a pending or active vehicle already has the VIN.
    """
    vehicle = vehicle_service.intake_vehicle(request.vin, images=request.images, videos=request.videos)
    return VehicleResponse.from_domain(vehicle)


@router.patch(
    "/vehicles/{vehicle_id}",
    response_model=VehicleResponse,
    summary="Edit Vehicle Details",
    dependencies=[Depends(require_admin)],
)
def update_vehicle(vehicle_id: int, request: VehicleDetailsRequest):
    return VehicleResponse.from_domain(
        vehicle_service.update_vehicle_details(vehicle_id, _details(request))
    )


@router.post(
    "/vehicles/{vehicle_id}/price",
    response_model=VehicleResponse,
    summary="Price Vehicle",
    description="Set the price and list the vehicle (pending/active → active, out of queue).",
    dependencies=[Depends(require_admin)],
)
def price_vehicle(vehicle_id: int, request: VehiclePriceRequest):
    return VehicleResponse.from_domain(vehicle_service.price_vehicle(vehicle_id, request.price))


@router.post(
    "/vehicles/{vehicle_id}/complete",
    response_model=VehicleResponse,
    summary="Complete Vehicle",
    description="Fill listing details and list the vehicle. Requires a price and at least one video.",
    dependencies=[Depends(require_admin)],
)
def complete_vehicle(vehicle_id: int, request: VehicleDetailsRequest):
    return VehicleResponse.from_domain(
        vehicle_service.complete_vehicle(vehicle_id, _details(request))
    )


@router.post(
    "/vehicles/{vehicle_id}/remove",
    response_model=VehicleResponse,
    summary="Remove Vehicle",
    dependencies=[Depends(require_admin)],
)
def remove_vehicle(vehicle_id: int):
    return VehicleResponse.from_domain(vehicle_service.remove_vehicle(vehicle_id))


@router.post(
    "/vehicles/{vehicle_id}/reactivate",
    response_model=VehicleResponse,
    summary="Reactivate Vehicle",
    description="Return a sold or removed vehicle to the listing. Notes are required.",
    dependencies=[Depends(require_admin)],
)
def reactivate_vehicle(vehicle_id: int, request: ReactivateRequest):
    return VehicleResponse.from_domain(
        vehicle_service.reactivate_vehicle(vehicle_id, request.notes)
    )


@router.post(
    "/vehicles/{vehicle_id}/inspection",
    response_model=VehicleResponse,
    summary="Record Inspection",
    dependencies=[Depends(require_admin)],
)
def record_inspection(vehicle_id: int, request: InspectionRequest):
    vehicle = vehicle_service.record_inspection(
        vehicle_id,
        status=request.status,
        fail_reason=request.fail_reason,
        cosmetic_repair_estimate=request.cosmetic_repair_estimate,
        mechanical_repair_estimate=request.mechanical_repair_estimate,
        vin_photo=request.vin_photo,
        walkaround_video=request.walkaround_video,
        mechanical_video=request.mechanical_video,
        notes=request.notes,
    )
    return VehicleResponse.from_domain(vehicle)


@router.post(
    "/vehicles/sync",
    response_model=SheetSyncResponse,
    summary="Import Vehicles from Google Sheet",
    dependencies=[Depends(require_admin)],
)
def sync_vehicles():
    result = sync_vehicles_from_sheet()
    return SheetSyncResponse(imported=result.imported, skipped=result.skipped, errors=result.errors)
