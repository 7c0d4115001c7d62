"""
Tests for `domain/offer.py`.

Covers contract rules:
- Only the transitions in the table are allowed, per actor.
- accepted, declined and expired are terminal.
- A pending offer carries no counter terms.
- The agreed amount is the counter amount when the dealer accepted a counter.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from domain.offer import (
    InvalidOfferTransition,
    Offer,
    OfferAction,
    OfferActor,
    OfferStatus,
    format_amount,
    next_offer_status,
)

NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def _offer(**overrides) -> Offer:
    values = dict(
        offer_id=1,
        vehicle_id=2,
        dealer_id=3,
        amount=Decimal("10000"),
        status=OfferStatus.PENDING,
        created_at=NOW,
        expires_at=NOW + timedelta(hours=48),
    )
    values.update(overrides)
    return Offer(**values)


@pytest.mark.parametrize(
    "actor, current, action, expected",
    [
        (OfferActor.ADMIN, OfferStatus.PENDING, OfferAction.ACCEPT, OfferStatus.ACCEPTED),
        (OfferActor.ADMIN, OfferStatus.PENDING, OfferAction.DECLINE, OfferStatus.DECLINED),
        (OfferActor.ADMIN, OfferStatus.PENDING, OfferAction.COUNTER, OfferStatus.COUNTERED),
        (OfferActor.DEALER, OfferStatus.COUNTERED, OfferAction.ACCEPT, OfferStatus.ACCEPTED),
        (OfferActor.DEALER, OfferStatus.COUNTERED, OfferAction.DECLINE, OfferStatus.DECLINED),
        (OfferActor.SYSTEM, OfferStatus.PENDING, OfferAction.EXPIRE, OfferStatus.EXPIRED),
        (OfferActor.SYSTEM, OfferStatus.COUNTERED, OfferAction.EXPIRE, OfferStatus.EXPIRED),
    ],
)
def test_allowed_transitions(actor, current, action, expected) -> None:
    assert next_offer_status(actor, current, action) == expected


@pytest.mark.parametrize(
    "actor, current, action",
    [
        (OfferActor.DEALER, OfferStatus.PENDING, OfferAction.ACCEPT),
        (OfferActor.ADMIN, OfferStatus.COUNTERED, OfferAction.ACCEPT),
        (OfferActor.ADMIN, OfferStatus.COUNTERED, OfferAction.COUNTER),
        (OfferActor.DEALER, OfferStatus.COUNTERED, OfferAction.COUNTER),
        (OfferActor.ADMIN, OfferStatus.ACCEPTED, OfferAction.DECLINE),
        (OfferActor.SYSTEM, OfferStatus.DECLINED, OfferAction.EXPIRE),
        (OfferActor.ADMIN, OfferStatus.PENDING, OfferAction.EXPIRE),
    ],
)
def test_disallowed_transitions_raise(actor, current, action) -> None:
    with pytest.raises(InvalidOfferTransition) as exc_info:
        next_offer_status(actor, current, action)

    assert exc_info.value.current == current


def test_pending_offer_cannot_carry_counter_terms() -> None:
    with pytest.raises(ValueError):
        _offer(counter_amount=Decimal("9000"))


def test_amount_must_be_positive() -> None:
    with pytest.raises(ValueError):
        _offer(amount=Decimal("0"))


def test_open_offer_expires_at_deadline() -> None:
    offer = _offer(expires_at=NOW)

    assert offer.is_expired(NOW)
    assert not offer.is_expired(NOW - timedelta(microseconds=1))


def test_terminal_offer_is_never_reported_expired() -> None:
    offer = _offer(status=OfferStatus.DECLINED, expires_at=NOW - timedelta(days=1))

    assert offer.is_terminal
    assert not offer.is_expired(NOW)


def test_agreed_amount_uses_counter_when_present() -> None:
    accepted_counter = _offer(
        status=OfferStatus.ACCEPTED,
        counter_amount=Decimal("10500"),
        counter_message="Includes new tires",
    )
    accepted_original = _offer(status=OfferStatus.ACCEPTED)

    assert accepted_counter.agreed_amount == Decimal("10500")
    assert accepted_original.agreed_amount == Decimal("10000")
    assert _offer().agreed_amount is None


def test_format_amount() -> None:
    assert format_amount(Decimal("15000")) == "$15,000.00"
    assert format_amount(Decimal("999.5")) == "$999.50"
