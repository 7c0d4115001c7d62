"""
Transaction repository (persistence).

This module provides *only* persistence operations for the Transaction domain
entity. Transactions are inserted exclusively by the `redeem_buy_code` database
function (see services/redemption_service.py); this module reads them and
applies admin updates.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, List, Mapping, Optional

from domain.time import parse_optional_utc_datetime
from domain.transaction import Transaction, TransactionStatus
from repositories.client import check_response, get_supabase

# Supabase table name for transactions.
# Keep this aligned with your database schema.
_TRANSACTIONS_TABLE: str = "transactions"

UPDATABLE_COLUMNS = frozenset({"status", "is_paid", "bill_of_sale"})


def row_to_transaction(row: Mapping[str, Any]) -> Transaction:
    """Convert a Supabase row (or RPC payload) into a Transaction."""

    return Transaction(
        transaction_id=int(row["transaction_id"]),
        vehicle_id=int(row["vehicle_id"]),
        dealer_id=int(row["dealer_id"]),
        buy_code_id=int(row["buy_code_id"]),
        amount=Decimal(str(row["amount"])),
        status=TransactionStatus(str(row.get("status") or TransactionStatus.PENDING.value)),
        is_paid=bool(row.get("is_paid") or False),
        bill_of_sale=row.get("bill_of_sale"),
        created_at=parse_optional_utc_datetime(row.get("created_at_utc")),
    )


def get_transaction_by_id(transaction_id: int) -> Optional[Transaction]:
    """
    Retrieve a single transaction by its ID.

    Returns:
        Transaction or None if not found
    """

    response = (
        get_supabase().table(_TRANSACTIONS_TABLE)
        .select("*")
        .eq("transaction_id", transaction_id)
        .limit(1)
        .execute()
    )
    rows = check_response(response, "get transaction")
    return row_to_transaction(rows[0]) if rows else None


def list_transactions(
    dealer_id: Optional[int] = None,
    vehicle_id: Optional[int] = None,
) -> List[Transaction]:
    """
    Retrieve transactions, newest first.

    Args:
        dealer_id: Only this dealer's purchases
        vehicle_id: Only sales of this vehicle

    Returns:
        List[Transaction] (possibly empty)
    """

    query = get_supabase().table(_TRANSACTIONS_TABLE).select("*")
    if dealer_id is not None:
        query = query.eq("dealer_id", dealer_id)
    if vehicle_id is not None:
        query = query.eq("vehicle_id", vehicle_id)

    rows = check_response(query.order("created_at_utc", desc=True).execute(), "list transactions")
    return [row_to_transaction(row) for row in rows]


def update_transaction(transaction_id: int, fields: Mapping[str, Any]) -> Optional[Transaction]:
    """
    Update payment status / completion / bill of sale for a transaction.

    Returns:
        Updated Transaction, or None if it does not exist
    """

    unknown = set(fields) - UPDATABLE_COLUMNS
    if unknown:
        raise ValueError(f"Cannot update transaction columns: {sorted(unknown)}")
    if not fields:
        return get_transaction_by_id(transaction_id)

    payload = {
        column: (value.value if isinstance(value, TransactionStatus) else value)
        for column, value in fields.items()
    }

    response = (
        get_supabase().table(_TRANSACTIONS_TABLE)
        .update(payload)
        .eq("transaction_id", transaction_id)
        .execute()
    )
    rows = check_response(response, "update transaction")
    return row_to_transaction(rows[0]) if rows else None


__all__ = [
    "row_to_transaction",
    "get_transaction_by_id",
    "list_transactions",
    "update_transaction",
]
