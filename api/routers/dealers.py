"""
Dealers API Endpoints.

Admin management of dealer accounts.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import require_admin
from api.models import DealerCreateRequest, DealerResponse, DealerUpdateRequest
from services import dealer_service

router = APIRouter(dependencies=[Depends(require_admin)])


@router.post(
    "/dealers",
    response_model=DealerResponse,
    status_code=201,
    summary="Create Dealer",
)
def create_dealer(request: DealerCreateRequest):
    dealer = dealer_service.create_dealer(
        request.username,
        request.password,
        request.dealer_name,
        request.email,
        profile=request.profile_columns(),
    )
    return DealerResponse.from_domain(dealer)


@router.get(
    "/dealers",
    response_model=List[DealerResponse],
    summary="List Dealers",
)
def list_dealers(active: Optional[bool] = Query(None, description="Filter by active flag")):
    return [DealerResponse.from_domain(d) for d in dealer_service.list_dealers(active=active)]


@router.get(
    "/dealers/{dealer_id}",
    response_model=DealerResponse,
    summary="Get Dealer",
)
def get_dealer(dealer_id: int):
    return DealerResponse.from_domain(dealer_service.get_dealer(dealer_id))


@router.patch(
    "/dealers/{dealer_id}",
    response_model=DealerResponse,
    summary="Update Dealer",
    description="Partial update. Set active=false to block logins, offers and buy code use.",
)
def update_dealer(dealer_id: int, request: DealerUpdateRequest):
    dealer = dealer_service.update_dealer(
        dealer_id,
        request.update_columns(),
        password=request.password,
    )
    return DealerResponse.from_domain(dealer)
