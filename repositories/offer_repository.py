"""
Offer repository (persistence).

Stores offers and their append-only activity trail (`offer_activities`).
Activity rows are only ever inserted; nothing here updates or deletes them.

Offer status changes use `transition_offer`, a conditional update that only
matches while the offer still has the status the caller observed.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional

from domain.offer import (
    TERMINAL_OFFER_STATUSES,
    Offer,
    OfferActivity,
    OfferActor,
    OfferStatus,
)
from domain.time import parse_optional_utc_datetime, parse_utc_datetime, to_iso_utc
from repositories.client import check_response, get_supabase

_OFFERS_TABLE: str = "offers"
_ACTIVITIES_TABLE: str = "offer_activities"

_OPEN_STATUSES = [s.value for s in OfferStatus if s not in TERMINAL_OFFER_STATUSES]


def _row_to_activity(row: Mapping[str, Any]) -> OfferActivity:
    return OfferActivity(
        activity_id=int(row["activity_id"]),
        offer_id=int(row["offer_id"]),
        actor=OfferActor(str(row["actor"])),
        message=str(row["message"]),
        created_at=parse_utc_datetime(row["created_at_utc"]),
    )


def _row_to_offer(row: Mapping[str, Any], activities: Iterable[OfferActivity] = ()) -> Offer:
    counter_amount = row.get("counter_amount")
    return Offer(
        offer_id=int(row["offer_id"]),
        vehicle_id=int(row["vehicle_id"]),
        dealer_id=int(row["dealer_id"]),
        amount=Decimal(str(row["amount"])),
        status=OfferStatus(str(row["status"])),
        created_at=parse_utc_datetime(row["created_at_utc"]),
        expires_at=parse_optional_utc_datetime(row.get("expires_at_utc")),
        counter_amount=Decimal(str(counter_amount)) if counter_amount is not None else None,
        counter_message=row.get("counter_message"),
        updated_at=parse_optional_utc_datetime(row.get("updated_at_utc")),
        activities=tuple(activities),
    )


def _activities_by_offer(offer_ids: List[int]) -> Dict[int, List[OfferActivity]]:
    """Fetch trails for several offers in one query, ordered oldest first."""

    grouped: Dict[int, List[OfferActivity]] = {offer_id: [] for offer_id in offer_ids}
    if not offer_ids:
        return grouped

    response = (
        get_supabase().table(_ACTIVITIES_TABLE)
        .select("*")
        .in_("offer_id", offer_ids)
        .order("created_at_utc")
        .order("activity_id")
        .execute()
    )
    for row in check_response(response, "list offer activity"):
        activity = _row_to_activity(row)
        grouped.setdefault(activity.offer_id, []).append(activity)
    return grouped


def _rows_to_offers(rows: List[Mapping[str, Any]]) -> List[Offer]:
    trails = _activities_by_offer([int(row["offer_id"]) for row in rows])
    return [_row_to_offer(row, trails.get(int(row["offer_id"]), ())) for row in rows]


def get_offer_by_id(offer_id: int) -> Optional[Offer]:
    """Retrieve an offer with its activity trail, or None."""

    response = (
        get_supabase().table(_OFFERS_TABLE)
        .select("*")
        .eq("offer_id", offer_id)
        .limit(1)
        .execute()
    )
    rows = check_response(response, "get offer")
    if not rows:
        return None
    return _rows_to_offers(rows)[0]


def list_offers(
    vehicle_id: Optional[int] = None,
    dealer_id: Optional[int] = None,
    status: Optional[OfferStatus] = None,
) -> List[Offer]:
    """
    Query offers (with trails), newest first.

    Args:
        vehicle_id: Only offers on this vehicle
        dealer_id: Only offers from this dealer
        status: Only offers with this stored status
    """

    query = get_supabase().table(_OFFERS_TABLE).select("*")
    if vehicle_id is not None:
        query = query.eq("vehicle_id", vehicle_id)
    if dealer_id is not None:
        query = query.eq("dealer_id", dealer_id)
    if status is not None:
        query = query.eq("status", status.value)

    rows = check_response(query.order("created_at_utc", desc=True).execute(), "list offers")
    return _rows_to_offers(rows)


def list_open_offers_expiring_before(cutoff: datetime) -> List[Offer]:
    """Non-terminal offers whose expires_at is at or before `cutoff`."""

    response = (
        get_supabase().table(_OFFERS_TABLE)
        .select("*")
        .in_("status", _OPEN_STATUSES)
        .lte("expires_at_utc", to_iso_utc(cutoff, name="cutoff"))
        .execute()
    )
    rows = check_response(response, "list expiring offers")
    return _rows_to_offers(rows)


def create_offer(
    vehicle_id: int,
    dealer_id: int,
    amount: Decimal,
    created_at: datetime,
    expires_at: Optional[datetime],
) -> Offer:
    """Insert a pending offer (without activity; see add_activity)."""

    created_iso = to_iso_utc(created_at, name="created_at")
    payload: dict[str, Any] = {
        "vehicle_id": vehicle_id,
        "dealer_id": dealer_id,
        "amount": str(amount),
        "status": OfferStatus.PENDING.value,
        "counter_amount": None,
        "counter_message": None,
        "expires_at_utc": to_iso_utc(expires_at, name="expires_at") if expires_at else None,
        "created_at_utc": created_iso,
        "updated_at_utc": created_iso,
    }

    response = get_supabase().table(_OFFERS_TABLE).insert(payload).execute()
    rows = check_response(response, "create offer")
    return _row_to_offer(rows[0])


def transition_offer(
    offer_id: int,
    expected_status: OfferStatus,
    new_status: OfferStatus,
    updated_at: datetime,
    counter_amount: Optional[Decimal] = None,
    counter_message: Optional[str] = None,
) -> bool:
    """
    Move an offer from `expected_status` to `new_status`.

    Counter terms are written only when given. Returns False when no row
    matched, meaning the offer is gone or another request changed it first.
    """

    payload: dict[str, Any] = {
        "status": new_status.value,
        "updated_at_utc": to_iso_utc(updated_at, name="updated_at"),
    }
    if counter_amount is not None:
        payload["counter_amount"] = str(counter_amount)
    if counter_message is not None:
        payload["counter_message"] = counter_message

    response = (
        get_supabase().table(_OFFERS_TABLE)
        .update(payload)
        .eq("offer_id", offer_id)
        .eq("status", expected_status.value)
        .execute()
    )
    return bool(check_response(response, "update offer"))


def add_activity(
    offer_id: int,
    actor: OfferActor,
    message: str,
    created_at: datetime,
) -> OfferActivity:
    """Append one entry to an offer's activity trail."""

    payload = {
        "offer_id": offer_id,
        "actor": actor.value,
        "message": message,
        "created_at_utc": to_iso_utc(created_at, name="created_at"),
    }
    response = get_supabase().table(_ACTIVITIES_TABLE).insert(payload).execute()
    rows = check_response(response, "record offer activity")
    return _row_to_activity(rows[0])


__all__ = [
    "get_offer_by_id",
    "list_offers",
    "list_open_offers_expiring_before",
    "create_offer",
    "transition_offer",
    "add_activity",
]
