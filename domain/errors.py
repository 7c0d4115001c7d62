"""
Domain: error kinds.

Every rejection a workflow can produce is named by a member of one of the
closed enumerations below, so callers can branch on `kind` instead of parsing
human-readable messages. The default message for each kind lives next to it.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Union


class RedemptionErrorKind(str, Enum):
    CODE_NOT_FOUND = "code_not_found"
    CODE_INACTIVE = "code_inactive"
    CODE_EXHAUSTED = "code_exhausted"
    CODE_EXPIRED = "code_expired"
    DEALER_INACTIVE = "dealer_inactive"
    VEHICLE_NOT_FOUND = "vehicle_not_found"
    VEHICLE_UNAVAILABLE = "vehicle_unavailable"


class OfferErrorKind(str, Enum):
    OFFER_NOT_FOUND = "offer_not_found"
    OFFER_CLOSED = "offer_closed"
    OFFER_EXPIRED = "offer_expired"
    INVALID_TRANSITION = "invalid_transition"
    COUNTER_AMOUNT_REQUIRED = "counter_amount_required"
    NOT_OFFER_OWNER = "not_offer_owner"
    CONCURRENT_UPDATE = "concurrent_update"
    DEALER_INACTIVE = "dealer_inactive"
    VEHICLE_NOT_FOUND = "vehicle_not_found"
    VEHICLE_UNAVAILABLE = "vehicle_unavailable"
    INVALID_EXPIRY = "invalid_expiry"
    INVALID_AMOUNT = "invalid_amount"


class VehicleErrorKind(str, Enum):
    VEHICLE_NOT_FOUND = "vehicle_not_found"
    INVALID_VIN = "invalid_vin"
    DUPLICATE_VIN = "duplicate_vin"
    INVALID_TRANSITION = "invalid_transition"
    NOTES_REQUIRED = "notes_required"
    PRICE_REQUIRED = "price_required"
    VIDEO_REQUIRED = "video_required"
    FAIL_REASON_REQUIRED = "fail_reason_required"
    CONCURRENT_UPDATE = "concurrent_update"
    INVALID_VALUE = "invalid_value"


class LedgerErrorKind(str, Enum):
    """Errors from the dealer / buy code / transaction administration endpoints."""

    DEALER_NOT_FOUND = "dealer_not_found"
    DUPLICATE_USERNAME = "duplicate_username"
    BUY_CODE_NOT_FOUND = "buy_code_not_found"
    DUPLICATE_CODE = "duplicate_code"
    TRANSACTION_NOT_FOUND = "transaction_not_found"
    INVALID_MEDIA = "invalid_media"
    SHEET_UNAVAILABLE = "sheet_unavailable"
    INVALID_VALUE = "invalid_value"


ErrorKind = Union[RedemptionErrorKind, OfferErrorKind, VehicleErrorKind, LedgerErrorKind]


REDEMPTION_ERROR_MESSAGES: dict[RedemptionErrorKind, str] = {
    RedemptionErrorKind.CODE_NOT_FOUND: "Invalid buy code",
    RedemptionErrorKind.CODE_INACTIVE: "Buy code is inactive",
    RedemptionErrorKind.CODE_EXHAUSTED: "Buy code has reached its usage limit",
    RedemptionErrorKind.CODE_EXPIRED: "Buy code has expired",
    RedemptionErrorKind.DEALER_INACTIVE: "Dealer account is inactive",
    RedemptionErrorKind.VEHICLE_NOT_FOUND: "Vehicle not found",
    RedemptionErrorKind.VEHICLE_UNAVAILABLE: "Vehicle is no longer available",
}


class WorkflowError(Exception):
    """
    Business-rule rejection raised by a workflow.

    Carries a machine-readable `kind` and a human-readable message.
    """

    def __init__(self, kind: ErrorKind, message: Optional[str] = None) -> None:
        self.kind = kind
        self.message = message or kind.value.replace("_", " ").capitalize()
        super().__init__(self.message)


__all__ = [
    "RedemptionErrorKind",
    "OfferErrorKind",
    "VehicleErrorKind",
    "LedgerErrorKind",
    "ErrorKind",
    "REDEMPTION_ERROR_MESSAGES",
    "WorkflowError",
]
