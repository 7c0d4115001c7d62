"""
Transactions API Endpoints.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile

from api.dependencies import require_admin, require_dealer
from api.models import TransactionResponse, TransactionUpdateRequest
from services import transaction_service
from services.auth_service import TokenClaims
from services.media_service import MediaFile

router = APIRouter()


@router.get(
    "/transactions",
    response_model=List[TransactionResponse],
    summary="List Transactions",
    dependencies=[Depends(require_admin)],
)
def list_transactions(
    dealer_id: Optional[int] = Query(None, alias="dealerId"),
    vehicle_id: Optional[int] = Query(None, alias="vehicleId"),
):
    transactions = transaction_service.list_transactions(dealer_id=dealer_id, vehicle_id=vehicle_id)
    return [TransactionResponse.from_domain(t) for t in transactions]


@router.get(
    "/transactions/{transaction_id}",
    response_model=TransactionResponse,
    summary="Get Transaction",
    dependencies=[Depends(require_admin)],
)
def get_transaction(transaction_id: int):
    return TransactionResponse.from_domain(transaction_service.get_transaction(transaction_id))


@router.patch(
    "/transactions/{transaction_id}",
    response_model=TransactionResponse,
    summary="Update Transaction",
    description="Mark a transaction paid and/or completed.",
    dependencies=[Depends(require_admin)],
)
def update_transaction(transaction_id: int, request: TransactionUpdateRequest):
    transaction = transaction_service.update_transaction(
        transaction_id,
        status=request.status,
        is_paid=request.is_paid,
    )
    return TransactionResponse.from_domain(transaction)


@router.post(
    "/transactions/{transaction_id}/bill-of-sale",
    response_model=TransactionResponse,
    summary="Upload Bill of Sale",
    dependencies=[Depends(require_admin)],
)
def upload_bill_of_sale(transaction_id: int, file: UploadFile = File(...)):
    media = MediaFile(
        filename=file.filename or "bill-of-sale",
        content_type=file.content_type or "application/octet-stream",
        data=file.file.read(),
    )
    return TransactionResponse.from_domain(transaction_service.attach_bill_of_sale(transaction_id, media))


@router.get(
    "/dealer/transactions",
    response_model=List[TransactionResponse],
    summary="List My Purchases",
)
def list_dealer_transactions(claims: TokenClaims = Depends(require_dealer)):
    transactions = transaction_service.list_transactions(dealer_id=claims.dealer_id)
    return [TransactionResponse.from_domain(t) for t in transactions]
