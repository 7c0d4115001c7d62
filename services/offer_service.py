"""
Offer workflow.

Dealers submit offers on listed vehicles; the admin accepts, declines or
counters; the dealer answers a counter. Every state change appends exactly one
entry to the offer's activity trail.

Status writes are conditional on the status the decision was based on
(see offer_repository.transition_offer). When two requests race, the loser gets
a CONCURRENT_UPDATE error and writes nothing.

Expiry is applied lazily: reading an overdue open offer persists the expired
status first, and acting on one persists the expiry and then rejects the action.
`expire_stale_offers` does the same in bulk for the sweep script.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional

from config import get_settings
from domain.errors import OfferErrorKind, WorkflowError
from domain.offer import (
    InvalidOfferTransition,
    Offer,
    OfferAction,
    OfferActor,
    OfferStatus,
    format_amount,
    next_offer_status,
)
from domain.time import require_utc_timestamp, utc_now
from repositories import offer_repository
from repositories.dealer_repository import get_dealer_by_id
from repositories.vehicle_repository import get_vehicle_by_id

logger = logging.getLogger(__name__)


def _require_positive(amount: Optional[Decimal], kind: OfferErrorKind, label: str) -> Decimal:
    if amount is None or amount <= 0:
        raise WorkflowError(kind, f"{label} must be greater than 0")
    return amount


def _load(offer_id: int) -> Offer:
    offer = offer_repository.get_offer_by_id(offer_id)
    if offer is None:
        raise WorkflowError(OfferErrorKind.OFFER_NOT_FOUND, "Offer not found")
    return offer


def _expire(offer: Offer, now: datetime) -> Offer:
    """Persist expiry of an overdue open offer and return the fresh row."""

    moved = offer_repository.transition_offer(
        offer.offer_id,
        expected_status=offer.status,
        new_status=next_offer_status(OfferActor.SYSTEM, offer.status, OfferAction.EXPIRE),
        updated_at=now,
    )
    if moved:
        offer_repository.add_activity(offer.offer_id, OfferActor.SYSTEM, "Offer expired", now)
        logger.info("Offer expired", extra={"offer_id": offer.offer_id, "vehicle_id": offer.vehicle_id})
    return _load(offer.offer_id)


def _refresh(offer: Offer, now: datetime) -> Offer:
    return _expire(offer, now) if offer.is_expired(now) else offer


def _activity_message(actor: OfferActor, action: OfferAction, offer: Offer,
                      counter_amount: Optional[Decimal], counter_message: Optional[str]) -> str:
    if actor == OfferActor.ADMIN:
        if action == OfferAction.ACCEPT:
            return f"Admin accepted the offer of {format_amount(offer.amount)}"
        if action == OfferAction.DECLINE:
            return f"Admin declined the offer of {format_amount(offer.amount)}"
        text = f"Admin countered with {format_amount(counter_amount)}"
        return f"{text}: {counter_message}" if counter_message else text

    counter = format_amount(offer.counter_amount) if offer.counter_amount is not None else "the counter"
    if action == OfferAction.ACCEPT:
        return f"Dealer accepted the counter offer of {counter}; sale completion pending"
    return f"Dealer declined the counter offer of {counter}"


def _respond(
    offer: Offer,
    actor: OfferActor,
    action: OfferAction,
    now: datetime,
    counter_amount: Optional[Decimal] = None,
    counter_message: Optional[str] = None,
) -> Offer:
    if offer.is_expired(now):
        _expire(offer, now)
        raise WorkflowError(OfferErrorKind.OFFER_EXPIRED, "Offer has expired")
    if offer.is_terminal:
        raise WorkflowError(OfferErrorKind.OFFER_CLOSED, f"Offer is already {offer.status.value}")

    try:
        new_status = next_offer_status(actor, offer.status, action)
    except InvalidOfferTransition as e:
        raise WorkflowError(OfferErrorKind.INVALID_TRANSITION, str(e))

    if action == OfferAction.COUNTER:
        counter_amount = _require_positive(
            counter_amount, OfferErrorKind.COUNTER_AMOUNT_REQUIRED, "Counter amount"
        )
        counter_message = (counter_message or "").strip() or None
    else:
        counter_amount = None
        counter_message = None

    moved = offer_repository.transition_offer(
        offer.offer_id,
        expected_status=offer.status,
        new_status=new_status,
        updated_at=now,
        counter_amount=counter_amount,
        counter_message=counter_message,
    )
    if not moved:
        logger.warning(
            "Offer changed concurrently",
            extra={"offer_id": offer.offer_id, "expected_status": offer.status.value},
        )
        raise WorkflowError(
            OfferErrorKind.CONCURRENT_UPDATE,
            "Offer was modified by another request; reload and try again",
        )

    offer_repository.add_activity(
        offer.offer_id,
        actor,
        _activity_message(actor, action, offer, counter_amount, counter_message),
        now,
    )
    logger.info(
        "Offer transitioned",
        extra={
            "offer_id": offer.offer_id,
            "actor": actor.value,
            "from_status": offer.status.value,
            "to_status": new_status.value,
        },
    )
    return _load(offer.offer_id)


def submit_offer(
    vehicle_id: int,
    dealer_id: int,
    amount: Decimal,
    now: Optional[datetime] = None,
    expires_at: Optional[datetime] = None,
) -> Offer:
    """
    Create a pending offer from a dealer.

    Args:
        vehicle_id: Listed vehicle the offer is for
        dealer_id: Dealer making the offer
        amount: Offered price (> 0)
        now: Submission time (defaults to current UTC time)
        expires_at: Optional deadline; defaults to now + OFFER_TTL_HOURS

    Raises:
        WorkflowError: VEHICLE_NOT_FOUND, VEHICLE_UNAVAILABLE, DEALER_INACTIVE,
            INVALID_AMOUNT or INVALID_EXPIRY
    """
    now = now or utc_now()
    _require_positive(amount, OfferErrorKind.INVALID_AMOUNT, "Offer amount")

    if expires_at is None:
        expires_at = now + timedelta(hours=get_settings().offer_ttl_hours)
    else:
        try:
            require_utc_timestamp("expires_at", expires_at)
        except ValueError as e:
            raise WorkflowError(OfferErrorKind.INVALID_EXPIRY, str(e))
        if expires_at <= now:
            raise WorkflowError(OfferErrorKind.INVALID_EXPIRY, "Offer expiry must be in the future")

    dealer = get_dealer_by_id(dealer_id)
    if dealer is None or not dealer.is_active():
        raise WorkflowError(OfferErrorKind.DEALER_INACTIVE, "Dealer account is inactive")

    vehicle = get_vehicle_by_id(vehicle_id)
    if vehicle is None:
        raise WorkflowError(OfferErrorKind.VEHICLE_NOT_FOUND, "Vehicle not found")
    if not vehicle.accepts_offers():
        raise WorkflowError(
            OfferErrorKind.VEHICLE_UNAVAILABLE,
            "Vehicle is not available for offers",
        )

    offer = offer_repository.create_offer(vehicle_id, dealer_id, amount, now, expires_at)
    offer_repository.add_activity(
        offer.offer_id,
        OfferActor.DEALER,
        f"{dealer.dealer_name} offered {format_amount(amount)}",
        now,
    )
    logger.info(
        "Offer submitted",
        extra={"offer_id": offer.offer_id, "vehicle_id": vehicle_id, "dealer_id": dealer_id},
    )
    return _load(offer.offer_id)


def get_offer(offer_id: int, now: Optional[datetime] = None) -> Offer:
    """Fetch an offer (with trail), expiring it first if its deadline passed."""
    return _refresh(_load(offer_id), now or utc_now())


def get_dealer_offer(offer_id: int, dealer_id: int, now: Optional[datetime] = None) -> Offer:
    offer = _load(offer_id)
    if offer.dealer_id != dealer_id:
        raise WorkflowError(OfferErrorKind.NOT_OFFER_OWNER, "Offer belongs to another dealer")
    return _refresh(offer, now or utc_now())


def list_offers(
    vehicle_id: Optional[int] = None,
    dealer_id: Optional[int] = None,
    status: Optional[OfferStatus] = None,
    now: Optional[datetime] = None,
) -> List[Offer]:
    """List offers newest first; overdue open offers are expired on the way out."""

    now = now or utc_now()
    offers = [
        _refresh(offer, now)
        for offer in offer_repository.list_offers(vehicle_id=vehicle_id, dealer_id=dealer_id)
    ]
    if status is not None:
        offers = [offer for offer in offers if offer.status == status]
    return offers


def respond_as_admin(
    offer_id: int,
    action: OfferAction,
    counter_amount: Optional[Decimal] = None,
    counter_message: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Offer:
    """Admin accepts, declines or counters a pending offer."""
    return _respond(
        _load(offer_id),
        OfferActor.ADMIN,
        action,
        now or utc_now(),
        counter_amount=counter_amount,
        counter_message=counter_message,
    )


def respond_as_dealer(
    offer_id: int,
    dealer_id: int,
    action: OfferAction,
    now: Optional[datetime] = None,
) -> Offer:
    """
    Dealer accepts or declines a counter offer on one of their own offers.

    Accepting records the agreed price only; the sale itself is completed
    separately (buy code redemption or manual transaction).
    """
    offer = _load(offer_id)
    if offer.dealer_id != dealer_id:
        raise WorkflowError(OfferErrorKind.NOT_OFFER_OWNER, "Offer belongs to another dealer")
    return _respond(offer, OfferActor.DEALER, action, now or utc_now())


def expire_stale_offers(now: Optional[datetime] = None) -> int:
    """
    Expire every open offer whose deadline has passed.

    Returns:
        Number of overdue offers found, all now expired
    """
    now = now or utc_now()
    expired = 0
    for offer in offer_repository.list_open_offers_expiring_before(now):
        if _expire(offer, now).status == OfferStatus.EXPIRED:
            expired += 1
    return expired


__all__ = [
    "submit_offer",
    "get_offer",
    "get_dealer_offer",
    "list_offers",
    "respond_as_admin",
    "respond_as_dealer",
    "expire_stale_offers",
]
