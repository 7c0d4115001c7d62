"""
Redemption service for buy codes.

Handles:
- Ordered validation of a buy code against a vehicle
- Integration with the redeem_buy_code() PostgreSQL function, which performs
  the sale atomically
- Translation of every rejection into a RedemptionErrorKind

Validation order (first failure wins):
    code exists → code active → usage below cap → not expired →
    dealer active → vehicle exists → vehicle not sold
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional

from domain.errors import REDEMPTION_ERROR_MESSAGES, RedemptionErrorKind
from domain.time import to_iso_utc, utc_now
from domain.transaction import Transaction
from repositories.buy_code_repository import get_buy_code
from repositories.client import get_supabase
from repositories.dealer_repository import get_dealer_by_id
from repositories.transaction_repository import row_to_transaction
from repositories.vehicle_repository import get_vehicle_by_id

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RedemptionRequest:
    """
    Request to redeem a buy code against a specific vehicle.
    """
    code: str
    vehicle_id: int


@dataclass(frozen=True, slots=True)
class RedemptionResult:
    """
    Result of a redemption attempt.

    success: True if the vehicle was sold
    transaction: The created transaction (only when success=True)
    error_kind: Why the redemption was rejected (only when success=False)
    error_message: Human-readable form of error_kind
    """
    success: bool
    transaction: Optional[Transaction] = None
    error_kind: Optional[RedemptionErrorKind] = None
    error_message: Optional[str] = None

    @classmethod
    def rejected(cls, kind: RedemptionErrorKind) -> "RedemptionResult":
        return cls(success=False, error_kind=kind, error_message=REDEMPTION_ERROR_MESSAGES[kind])

    @classmethod
    def completed(cls, transaction: Transaction) -> "RedemptionResult":
        return cls(success=True, transaction=transaction)


class RedemptionUnavailableError(RuntimeError):
    """The database function failed for a reason other than a business rule."""


def check_redemption(request: RedemptionRequest, now: datetime) -> Optional[RedemptionErrorKind]:
    """
    Read-only validation in the documented order.

    Performs no writes. Returns the first failing check, or None when the
    redemption may proceed. The database function repeats every check under
    row locks, so a None here is advisory only.
    """
    buy_code = get_buy_code(request.code)
    if buy_code is None:
        return RedemptionErrorKind.CODE_NOT_FOUND

    reason = buy_code.rejection_reason(now)
    if reason is not None:
        return reason

    dealer = get_dealer_by_id(buy_code.dealer_id)
    if dealer is None or not dealer.can_redeem():
        return RedemptionErrorKind.DEALER_INACTIVE

    vehicle = get_vehicle_by_id(request.vehicle_id)
    if vehicle is None:
        return RedemptionErrorKind.VEHICLE_NOT_FOUND

    return vehicle.redemption_rejection()


def _parse_rpc_payload(payload: Any) -> RedemptionResult:
    """Map the JSON returned by redeem_buy_code() onto a RedemptionResult."""

    if isinstance(payload, list):
        # Some PostgREST versions wrap scalar function results in a list
        payload = payload[0] if payload else {}
    if not isinstance(payload, Mapping):
        raise RedemptionUnavailableError(f"Unexpected redeem_buy_code result: {payload!r}")

    if payload.get("success"):
        return RedemptionResult.completed(row_to_transaction(payload["transaction"]))

    try:
        kind = RedemptionErrorKind(payload.get("error"))
    except ValueError:
        raise RedemptionUnavailableError(
            f"redeem_buy_code failed: {payload.get('error')} {payload.get('message')}"
        )
    return RedemptionResult.rejected(kind)


def _execute_atomic_redemption(request: RedemptionRequest, now: datetime) -> RedemptionResult:
    """
    Execute the redemption via PostgreSQL function.

    Calls redeem_buy_code() which:
    - Locks the buy code row and the vehicle row (FOR UPDATE)
    - Re-validates code, dealer and vehicle under the locks
    - Inserts the transaction (status=pending, amount=vehicle price)
    - Increments usage_count
    - Marks the vehicle sold and out of the queue
    All in a single transaction; any failure rolls back every write.
    """
    from postgrest.exceptions import APIError

    try:
        response = get_supabase().rpc(
            "redeem_buy_code",
            {
                "p_code": request.code.strip().upper(),
                "p_vehicle_id": request.vehicle_id,
                "p_redeemed_at": to_iso_utc(now, name="now"),
            },
        ).execute()
    except APIError as e:
        # postgrest-py raises APIError when a function returns a JSON body it
        # cannot map onto rows; the body is still our result object.
        try:
            error_data = e.json() if callable(getattr(e, "json", None)) else {}
        except ValueError:
            error_data = {}
        if isinstance(error_data, Mapping) and "success" in error_data:
            return _parse_rpc_payload(error_data)
        raise RedemptionUnavailableError(f"redeem_buy_code failed: {e}") from e

    error = getattr(response, "error", None)
    if error:
        raise RedemptionUnavailableError(f"redeem_buy_code failed: {error}")

    return _parse_rpc_payload(response.data)


def redeem_buy_code(request: RedemptionRequest, now: Optional[datetime] = None) -> RedemptionResult:
    """
    Redeem a buy code against a vehicle.

    Process:
    1. Validate in order without writing (cheap rejection path)
    2. Run the atomic database function, which re-checks under row locks
    3. Return the created transaction or the first failing reason

    Args:
        request: RedemptionRequest with code and vehicle_id
        now: Evaluation time (defaults to current UTC time)

    Returns:
        RedemptionResult; never raises for business-rule rejections

    Raises:
        RedemptionUnavailableError: the database call itself failed

    Example:
        result = redeem_buy_code(RedemptionRequest(code="A1B2", vehicle_id=1))
        if result.success:
            print(f"Sold for ${result.transaction.amount}")
        else:
            print(f"Rejected: {result.error_kind.value}")
    """
    now = now or utc_now()
    log_context = {"code": request.code, "vehicle_id": request.vehicle_id}

    reason = check_redemption(request, now)
    if reason is not None:
        logger.info("Buy code redemption rejected", extra={**log_context, "reason": reason.value})
        return RedemptionResult.rejected(reason)

    result = _execute_atomic_redemption(request, now)

    if result.success and result.transaction is not None:
        logger.info(
            "Buy code redeemed",
            extra={
                **log_context,
                "transaction_id": result.transaction.transaction_id,
                "dealer_id": result.transaction.dealer_id,
                "amount": str(result.transaction.amount),
            },
        )
    else:
        # Lost a race: state changed between the pre-check and the locked re-check
        logger.warning(
            "Buy code redemption rejected under lock",
            extra={**log_context, "reason": result.error_kind.value if result.error_kind else None},
        )
    return result


__all__ = [
    "RedemptionRequest",
    "RedemptionResult",
    "RedemptionUnavailableError",
    "check_redemption",
    "redeem_buy_code",
]
