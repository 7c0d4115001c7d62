"""
Tests for `services/offer_service.py`.

Covers contract rules:
- Submission requires a positive amount, an active dealer and a listed vehicle.
- Each state change appends exactly one activity entry.
- Declined, accepted and expired offers accept no further mutations.
- Overdue open offers are expired lazily and by the sweep.
- A stale transition is rejected as a concurrent update.
"""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest

from domain.errors import OfferErrorKind, WorkflowError
from domain.offer import OfferAction, OfferActor, OfferStatus
from fakes import NOW, seed_dealer, seed_vehicle
from services import offer_service


@pytest.fixture
def dealer(db):
    return seed_dealer(db, dealer_name="Metro Auto")


@pytest.fixture
def vehicle(db):
    return seed_vehicle(db)


def _submit(vehicle, dealer, amount="20000", **kwargs):
    return offer_service.submit_offer(
        vehicle["vehicle_id"], dealer["dealer_id"], Decimal(amount), now=NOW, **kwargs
    )


def _kind(excinfo) -> str:
    return excinfo.value.kind.value


def test_submit_creates_pending_offer_with_activity(db, dealer, vehicle) -> None:
    offer = _submit(vehicle, dealer)

    assert offer.status == OfferStatus.PENDING
    assert offer.amount == Decimal("20000")
    assert offer.expires_at == NOW + timedelta(hours=48)
    assert [a.message for a in offer.activities] == ["Metro Auto offered $20,000.00"]
    assert offer.activities[0].actor == OfferActor.DEALER


def test_submit_respects_offer_ttl_setting(db, dealer, vehicle, monkeypatch) -> None:
    from config import get_settings

    monkeypatch.setenv("OFFER_TTL_HOURS", "2")
    get_settings.cache_clear()

    assert _submit(vehicle, dealer).expires_at == NOW + timedelta(hours=2)


@pytest.mark.parametrize("amount", ["0", "-5"])
def test_submit_rejects_non_positive_amount(db, dealer, vehicle, amount: str) -> None:
    with pytest.raises(WorkflowError) as excinfo:
        _submit(vehicle, dealer, amount=amount)
    assert _kind(excinfo) == "invalid_amount"
    assert db.tables["offers"] == []


def test_submit_rejects_past_expiry(db, dealer, vehicle) -> None:
    with pytest.raises(WorkflowError) as excinfo:
        _submit(vehicle, dealer, expires_at=NOW - timedelta(seconds=1))
    assert _kind(excinfo) == "invalid_expiry"


def test_submit_rejects_inactive_dealer(db, vehicle) -> None:
    inactive = seed_dealer(db, username="closed", active=False)
    with pytest.raises(WorkflowError) as excinfo:
        _submit(vehicle, inactive)
    assert _kind(excinfo) == "dealer_inactive"


@pytest.mark.parametrize(
    "status, in_queue",
    [("sold", False), ("pending", True), ("removed", False), ("active", True)],
)
def test_submit_rejects_unlisted_vehicle(db, dealer, status: str, in_queue: bool) -> None:
    vehicle = seed_vehicle(db, status=status, in_queue=in_queue)
    with pytest.raises(WorkflowError) as excinfo:
        _submit(vehicle, dealer)
    assert _kind(excinfo) == "vehicle_unavailable"


def test_submit_unknown_vehicle(db, dealer) -> None:
    with pytest.raises(WorkflowError) as excinfo:
        offer_service.submit_offer(404, dealer["dealer_id"], Decimal("100"), now=NOW)
    assert _kind(excinfo) == "vehicle_not_found"


def test_admin_accept(db, dealer, vehicle) -> None:
    offer = _submit(vehicle, dealer)

    accepted = offer_service.respond_as_admin(offer.offer_id, OfferAction.ACCEPT, now=NOW)

    assert accepted.status == OfferStatus.ACCEPTED
    assert accepted.agreed_amount == Decimal("20000")
    assert accepted.activities[-1].message == "Admin accepted the offer of $20,000.00"
    assert len(accepted.activities) == 2


def test_counter_then_dealer_decline_is_terminal(db, dealer, vehicle) -> None:
    """Verify pending -> countered -> declined, and nothing moves it afterwards."""

    offer = _submit(vehicle, dealer)
    countered = offer_service.respond_as_admin(
        offer.offer_id, OfferAction.COUNTER, counter_amount=Decimal("22000"),
        counter_message="Firm price", now=NOW,
    )
    assert countered.status == OfferStatus.COUNTERED
    assert countered.counter_amount == Decimal("22000")
    assert countered.activities[-1].message == "Admin countered with $22,000.00: Firm price"

    declined = offer_service.respond_as_dealer(
        offer.offer_id, dealer["dealer_id"], OfferAction.DECLINE, now=NOW
    )
    assert declined.status == OfferStatus.DECLINED
    assert declined.activities[-1].message == "Dealer declined the counter offer of $22,000.00"
    trail_length = len(declined.activities)

    with pytest.raises(WorkflowError) as excinfo:
        offer_service.respond_as_admin(offer.offer_id, OfferAction.ACCEPT, now=NOW)
    assert _kind(excinfo) == "offer_closed"
    with pytest.raises(WorkflowError):
        offer_service.respond_as_dealer(offer.offer_id, dealer["dealer_id"], OfferAction.ACCEPT, now=NOW)

    stored = offer_service.get_offer(offer.offer_id, now=NOW)
    assert stored.status == OfferStatus.DECLINED
    assert len(stored.activities) == trail_length


def test_dealer_accepts_counter(db, dealer, vehicle) -> None:
    offer = _submit(vehicle, dealer)
    offer_service.respond_as_admin(
        offer.offer_id, OfferAction.COUNTER, counter_amount=Decimal("21000"), now=NOW
    )

    accepted = offer_service.respond_as_dealer(
        offer.offer_id, dealer["dealer_id"], OfferAction.ACCEPT, now=NOW
    )

    assert accepted.status == OfferStatus.ACCEPTED
    assert accepted.agreed_amount == Decimal("21000")
    assert "sale completion pending" in accepted.activities[-1].message
    # Acceptance records the agreed price only
    assert db.row("vehicles", vehicle["vehicle_id"])["status"] == "active"
    assert db.tables["transactions"] == []


def test_counter_requires_amount(db, dealer, vehicle) -> None:
    offer = _submit(vehicle, dealer)
    with pytest.raises(WorkflowError) as excinfo:
        offer_service.respond_as_admin(offer.offer_id, OfferAction.COUNTER, now=NOW)
    assert _kind(excinfo) == "counter_amount_required"
    assert offer_service.get_offer(offer.offer_id, now=NOW).status == OfferStatus.PENDING


def test_dealer_cannot_answer_pending_offer(db, dealer, vehicle) -> None:
    offer = _submit(vehicle, dealer)
    with pytest.raises(WorkflowError) as excinfo:
        offer_service.respond_as_dealer(offer.offer_id, dealer["dealer_id"], OfferAction.ACCEPT, now=NOW)
    assert _kind(excinfo) == "invalid_transition"


def test_dealer_must_own_offer(db, dealer, vehicle) -> None:
    offer = _submit(vehicle, dealer)
    other = seed_dealer(db, username="other")

    with pytest.raises(WorkflowError) as excinfo:
        offer_service.respond_as_dealer(offer.offer_id, other["dealer_id"], OfferAction.DECLINE, now=NOW)
    assert _kind(excinfo) == "not_offer_owner"
    with pytest.raises(WorkflowError):
        offer_service.get_dealer_offer(offer.offer_id, other["dealer_id"], now=NOW)


def test_unknown_offer(db) -> None:
    with pytest.raises(WorkflowError) as excinfo:
        offer_service.get_offer(77, now=NOW)
    assert _kind(excinfo) == "offer_not_found"


def test_reading_overdue_offer_expires_it(db, dealer, vehicle) -> None:
    offer = _submit(vehicle, dealer, expires_at=NOW + timedelta(hours=1))
    later = NOW + timedelta(hours=2)

    expired = offer_service.get_offer(offer.offer_id, now=later)

    assert expired.status == OfferStatus.EXPIRED
    assert expired.activities[-1].actor == OfferActor.SYSTEM
    assert expired.activities[-1].message == "Offer expired"


def test_acting_on_overdue_offer_persists_expiry_and_rejects(db, dealer, vehicle) -> None:
    """Verify an expired offer never accepts a mutation, even the first one."""

    offer = _submit(vehicle, dealer, expires_at=NOW + timedelta(hours=1))
    later = NOW + timedelta(hours=2)

    with pytest.raises(WorkflowError) as excinfo:
        offer_service.respond_as_admin(offer.offer_id, OfferAction.ACCEPT, now=later)
    assert _kind(excinfo) == "offer_expired"
    assert db.row("offers", offer.offer_id)["status"] == "expired"

    with pytest.raises(WorkflowError) as excinfo:
        offer_service.respond_as_admin(offer.offer_id, OfferAction.ACCEPT, now=later)
    assert _kind(excinfo) == "offer_closed"


def test_stale_transition_is_concurrent_update(db, dealer, vehicle, monkeypatch) -> None:
    """Verify a decision based on an outdated status writes nothing."""

    offer = _submit(vehicle, dealer)
    stale = offer_service.get_offer(offer.offer_id, now=NOW)
    offer_service.respond_as_admin(offer.offer_id, OfferAction.DECLINE, now=NOW)
    trail = len(db.tables["offer_activities"])
    monkeypatch.setattr(offer_service, "_load", lambda offer_id: stale)

    with pytest.raises(WorkflowError) as excinfo:
        offer_service.respond_as_admin(offer.offer_id, OfferAction.ACCEPT, now=NOW)

    assert _kind(excinfo) == "concurrent_update"
    assert db.row("offers", offer.offer_id)["status"] == "declined"
    assert len(db.tables["offer_activities"]) == trail


def test_list_offers_filters(db, dealer, vehicle) -> None:
    other_vehicle = seed_vehicle(db, vin="2HGCM82633A004352")
    first = _submit(vehicle, dealer)
    _submit(other_vehicle, dealer, amount="9000")
    offer_service.respond_as_admin(first.offer_id, OfferAction.DECLINE, now=NOW)

    assert [o.offer_id for o in offer_service.list_offers(vehicle_id=vehicle["vehicle_id"], now=NOW)] == [
        first.offer_id
    ]
    assert len(offer_service.list_offers(dealer_id=dealer["dealer_id"], now=NOW)) == 2
    pending = offer_service.list_offers(status=OfferStatus.PENDING, now=NOW)
    assert [o.amount for o in pending] == [Decimal("9000")]


def test_list_offers_reports_lazily_expired_status(db, dealer, vehicle) -> None:
    _submit(vehicle, dealer, expires_at=NOW + timedelta(minutes=5))
    later = NOW + timedelta(hours=1)

    assert offer_service.list_offers(status=OfferStatus.PENDING, now=later) == []
    assert len(offer_service.list_offers(status=OfferStatus.EXPIRED, now=later)) == 1


def test_expire_stale_offers(db, dealer, vehicle) -> None:
    soon = _submit(vehicle, dealer, expires_at=NOW + timedelta(hours=1))
    later_offer = _submit(vehicle, dealer, expires_at=NOW + timedelta(days=3))
    countered = _submit(vehicle, dealer, expires_at=NOW + timedelta(hours=1))
    offer_service.respond_as_admin(
        countered.offer_id, OfferAction.COUNTER, counter_amount=Decimal("25000"), now=NOW
    )

    count = offer_service.expire_stale_offers(now=NOW + timedelta(hours=2))

    assert count == 2
    assert db.row("offers", soon.offer_id)["status"] == "expired"
    assert db.row("offers", countered.offer_id)["status"] == "expired"
    assert db.row("offers", later_offer.offer_id)["status"] == "pending"
    assert offer_service.expire_stale_offers(now=NOW + timedelta(hours=2)) == 0
