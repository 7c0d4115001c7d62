"""Admin bookkeeping on transactions created by buy code redemption."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from domain.errors import LedgerErrorKind, WorkflowError
from domain.transaction import Transaction, TransactionStatus
from repositories import transaction_repository
from services.media_service import MediaFile, upload_bill_of_sale

logger = logging.getLogger(__name__)


def get_transaction(transaction_id: int) -> Transaction:
    transaction = transaction_repository.get_transaction_by_id(transaction_id)
    if transaction is None:
        raise WorkflowError(LedgerErrorKind.TRANSACTION_NOT_FOUND, "Transaction not found")
    return transaction


def list_transactions(
    dealer_id: Optional[int] = None,
    vehicle_id: Optional[int] = None,
) -> List[Transaction]:
    return transaction_repository.list_transactions(dealer_id=dealer_id, vehicle_id=vehicle_id)


def update_transaction(
    transaction_id: int,
    status: Optional[TransactionStatus] = None,
    is_paid: Optional[bool] = None,
) -> Transaction:
    """Mark a transaction paid and/or completed. Amount and parties never change."""

    changes: Dict[str, Any] = {}
    if status is not None:
        changes["status"] = status
    if is_paid is not None:
        changes["is_paid"] = is_paid

    transaction = transaction_repository.update_transaction(transaction_id, changes)
    if transaction is None:
        raise WorkflowError(LedgerErrorKind.TRANSACTION_NOT_FOUND, "Transaction not found")

    if changes:
        logger.info(
            "Transaction updated",
            extra={
                "transaction_id": transaction_id,
                "status": transaction.status.value,
                "is_paid": transaction.is_paid,
            },
        )
    return transaction


def attach_bill_of_sale(transaction_id: int, file: MediaFile) -> Transaction:
    """Upload the signed bill of sale and store its URL on the transaction."""

    get_transaction(transaction_id)
    url = upload_bill_of_sale(transaction_id, file)
    transaction = transaction_repository.update_transaction(transaction_id, {"bill_of_sale": url})
    if transaction is None:
        raise WorkflowError(LedgerErrorKind.TRANSACTION_NOT_FOUND, "Transaction not found")
    logger.info("Bill of sale attached", extra={"transaction_id": transaction_id})
    return transaction


__all__ = [
    "get_transaction",
    "list_transactions",
    "update_transaction",
    "attach_bill_of_sale",
]
