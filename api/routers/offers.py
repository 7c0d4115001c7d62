"""
Offers API Endpoints.

Dealers submit offers and answer counters; the admin accepts, declines or
counters. Responses include the offer's activity trail.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import require_admin, require_dealer
from api.models import (
    AdminOfferUpdateRequest,
    DealerOfferUpdateRequest,
    OfferCreateRequest,
    OfferResponse,
)
from domain.offer import OfferAction, OfferStatus
from services import offer_service
from services.auth_service import TokenClaims

router = APIRouter()

_ADMIN_ACTIONS = {
    "accepted": OfferAction.ACCEPT,
    "declined": OfferAction.DECLINE,
    "countered": OfferAction.COUNTER,
}


@router.post(
    "/vehicles/{vehicle_id}/offers",
    response_model=OfferResponse,
    status_code=201,
    summary="Submit Offer",
    description="Dealer offers an amount for a listed vehicle. Expires after OFFER_TTL_HOURS unless expiresAt is given."
)
def submit_offer(
    vehicle_id: int,
    request: OfferCreateRequest,
    claims: TokenClaims = Depends(require_dealer),
):
    offer = offer_service.submit_offer(
        vehicle_id,
        claims.dealer_id,
        request.amount,
        expires_at=request.expires_at,
    )
    return OfferResponse.from_domain(offer)


@router.get(
    "/vehicles/{vehicle_id}/offers",
    response_model=List[OfferResponse],
    summary="List Offers for Vehicle",
    dependencies=[Depends(require_admin)],
)
def list_vehicle_offers(vehicle_id: int):
    return [OfferResponse.from_domain(o) for o in offer_service.list_offers(vehicle_id=vehicle_id)]


@router.get(
    "/offers",
    response_model=List[OfferResponse],
    summary="List Offers",
    dependencies=[Depends(require_admin)],
)
def list_offers(
    status: Optional[OfferStatus] = Query(None, description="Filter by status"),
    dealer_id: Optional[int] = Query(None, alias="dealerId"),
    vehicle_id: Optional[int] = Query(None, alias="vehicleId"),
):
    offers = offer_service.list_offers(vehicle_id=vehicle_id, dealer_id=dealer_id, status=status)
    return [OfferResponse.from_domain(o) for o in offers]


@router.get(
    "/offers/{offer_id}",
    response_model=OfferResponse,
    summary="Get Offer",
    dependencies=[Depends(require_admin)],
)
def get_offer(offer_id: int):
    return OfferResponse.from_domain(offer_service.get_offer(offer_id))


@router.patch(
    "/offers/{offer_id}",
    response_model=OfferResponse,
    summary="Respond to Offer (Admin)",
    description="Accept, decline or counter a pending offer.",
    dependencies=[Depends(require_admin)],
)
def respond_to_offer(offer_id: int, request: AdminOfferUpdateRequest):
    """
    **Example request:**
    ```json
    {"status": "countered", "counterAmount": "4100.00", "counterMessage": "Fresh tires"}
    ```
    A lost race with another update returns 409 `concurrent_update`.
    """
    offer = offer_service.respond_as_admin(
        offer_id,
        _ADMIN_ACTIONS[request.status],
        counter_amount=request.counter_amount,
        counter_message=request.counter_message,
    )
    return OfferResponse.from_domain(offer)


@router.get(
    "/dealer/offers",
    response_model=List[OfferResponse],
    summary="List My Offers",
)
def list_dealer_offers(claims: TokenClaims = Depends(require_dealer)):
    return [OfferResponse.from_domain(o) for o in offer_service.list_offers(dealer_id=claims.dealer_id)]


@router.get(
    "/dealer/offers/{offer_id}",
    response_model=OfferResponse,
    summary="Get My Offer",
)
def get_dealer_offer(offer_id: int, claims: TokenClaims = Depends(require_dealer)):
    return OfferResponse.from_domain(offer_service.get_dealer_offer(offer_id, claims.dealer_id))


@router.patch(
    "/dealer/offers/{offer_id}",
    response_model=OfferResponse,
    summary="Respond to Counter Offer",
    description="Dealer accepts or declines a counter offer on one of their own offers."
)
def respond_to_counter(
    offer_id: int,
    request: DealerOfferUpdateRequest,
    claims: TokenClaims = Depends(require_dealer),
):
    offer = offer_service.respond_as_dealer(offer_id, claims.dealer_id, OfferAction(request.action))
    return OfferResponse.from_domain(offer)
