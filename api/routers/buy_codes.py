"""
Buy Codes API Endpoints.

Redemption (verify-code) and admin management of buy codes.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import require_admin, require_dealer
from api.models import (
    BuyCodeCreateRequest,
    BuyCodeResponse,
    BuyCodeUpdateRequest,
    TransactionResponse,
    VerifyCodeRequest,
    VerifyCodeResponse,
)
from domain.errors import WorkflowError
from services import dealer_service
from services.auth_service import TokenClaims
from services.redemption_service import RedemptionRequest, redeem_buy_code

router = APIRouter()


@router.post(
    "/verify-code",
    response_model=VerifyCodeResponse,
    summary="Redeem Buy Code",
    description="Redeem a buy code against a vehicle. Creates the transaction and marks the vehicle sold atomically."
)
def verify_code(request: VerifyCodeRequest):
    """
    Redeem a buy code.

    **Checks (first failure wins):**
    1. Code exists (403 `code_not_found`)
    2. Code is active (403 `code_inactive`)
    3. Usage below maxUses (403 `code_exhausted`)
    4. Not expired (403 `code_expired`)
    5. Owning dealer is active (403 `dealer_inactive`)
    6. Vehicle exists (404 `vehicle_not_found`)
    7. Vehicle not sold (400 `vehicle_unavailable`)

    **Success response:**
    ```json
    {
      "valid": true,
      "transaction": {"transactionId": 7, "vehicleId": 42, "dealerId": 3,
                      "buyCodeId": 11, "amount": "3500.00", "status": "pending",
                      "isPaid": false}
    }
    ```
    """
    result = redeem_buy_code(RedemptionRequest(code=request.code, vehicle_id=request.vehicle_id))
    if not result.success:
        raise WorkflowError(result.error_kind, result.error_message)

    return VerifyCodeResponse(
        valid=True,
        transaction=TransactionResponse.from_domain(result.transaction),
    )


@router.post(
    "/buy-codes",
    response_model=BuyCodeResponse,
    status_code=201,
    summary="Create Buy Code",
    description="Issue a buy code to a dealer. A random 8-character code is generated when none is given.",
    dependencies=[Depends(require_admin)],
)
def create_buy_code(request: BuyCodeCreateRequest):
    buy_code = dealer_service.issue_buy_code(
        request.dealer_id,
        code=request.code,
        max_uses=request.max_uses,
        expires_at=request.expires_at,
    )
    return BuyCodeResponse.from_domain(buy_code)


@router.get(
    "/buy-codes",
    response_model=List[BuyCodeResponse],
    summary="List Buy Codes",
    dependencies=[Depends(require_admin)],
)
def list_buy_codes(dealer_id: Optional[int] = Query(None, alias="dealerId")):
    return [BuyCodeResponse.from_domain(c) for c in dealer_service.list_buy_codes(dealer_id=dealer_id)]


@router.patch(
    "/buy-codes/{buy_code_id}",
    response_model=BuyCodeResponse,
    summary="Activate/Deactivate Buy Code",
    dependencies=[Depends(require_admin)],
)
def update_buy_code(buy_code_id: int, request: BuyCodeUpdateRequest):
    return BuyCodeResponse.from_domain(dealer_service.set_buy_code_active(buy_code_id, request.active))


@router.get(
    "/dealer/buy-codes",
    response_model=List[BuyCodeResponse],
    summary="List My Buy Codes",
    description="Buy codes issued to the logged-in dealer, including inactive and used-up ones."
)
def list_dealer_buy_codes(claims: TokenClaims = Depends(require_dealer)):
    return [BuyCodeResponse.from_domain(c) for c in dealer_service.list_buy_codes(dealer_id=claims.dealer_id)]
