"""
Domain: Sale transactions.

A transaction is created exactly once per successful buy code redemption, by
the atomic redemption function in the database. Afterwards an admin may mark it
paid or completed and attach a bill of sale.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from .time import require_utc_timestamp


class TransactionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


@dataclass(frozen=True, slots=True)
class Transaction:
    """
    Immutable record of a vehicle sale.

    Captures:
    - What was sold (vehicle_id)
    - Who bought it and with which code (dealer_id, buy_code_id)
    - How much was paid (amount, the vehicle price at redemption time)
    - Payment and paperwork tracking (is_paid, bill_of_sale)
    """

    transaction_id: int
    vehicle_id: int
    dealer_id: int
    buy_code_id: int
    amount: Decimal
    status: TransactionStatus = TransactionStatus.PENDING
    is_paid: bool = False
    bill_of_sale: Optional[str] = None  # URL of the uploaded document
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.created_at is not None:
            require_utc_timestamp("created_at", self.created_at)
