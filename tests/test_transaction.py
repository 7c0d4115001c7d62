"""
Tests for `domain/transaction.py` and `domain/time.py`.

Covers contract rules:
- Transaction.created_at must be a UTC timestamp.
- Transaction is immutable (frozen).
- Supabase timestamps parse to timezone-aware UTC.
"""

from __future__ import annotations

from dataclasses import FrozenInstanceError
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from domain.time import parse_optional_utc_datetime, parse_utc_datetime, to_iso_utc
from domain.transaction import Transaction, TransactionStatus


def _transaction(**overrides) -> Transaction:
    values = dict(
        transaction_id=1,
        vehicle_id=2,
        dealer_id=3,
        buy_code_id=4,
        amount=Decimal("15000"),
        created_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
    )
    values.update(overrides)
    return Transaction(**values)


def test_transaction_defaults_to_pending_and_unpaid() -> None:
    transaction = _transaction()

    assert transaction.status == TransactionStatus.PENDING
    assert transaction.is_paid is False
    assert transaction.bill_of_sale is None


def test_transaction_created_at_must_be_utc() -> None:
    """Verify created_at enforces UTC timezone-aware timestamp."""

    with pytest.raises(ValueError):
        _transaction(created_at=datetime(2025, 1, 1))

    with pytest.raises(ValueError):
        _transaction(created_at=datetime(2025, 1, 1, tzinfo=timezone(timedelta(hours=2))))


def test_transaction_is_immutable() -> None:
    transaction = _transaction()

    with pytest.raises(FrozenInstanceError):
        transaction.amount = Decimal("1")  # type: ignore[misc]


def test_parse_utc_datetime_handles_z_suffix_and_offsets() -> None:
    assert parse_utc_datetime("2025-01-01T00:00:00Z") == datetime(2025, 1, 1, tzinfo=timezone.utc)
    assert parse_utc_datetime("2025-01-01T02:00:00+02:00") == datetime(2025, 1, 1, tzinfo=timezone.utc)
    assert parse_utc_datetime("2025-01-01T00:00:00").tzinfo is not None


def test_parse_optional_utc_datetime_blank() -> None:
    assert parse_optional_utc_datetime(None) is None
    assert parse_optional_utc_datetime("") is None


def test_to_iso_utc_rejects_naive() -> None:
    with pytest.raises(ValueError):
        to_iso_utc(datetime(2025, 1, 1), name="created_at")
