"""
Tests for `domain/buy_code.py`.

Covers contract rules:
- usage_count never exceeds max_uses; max_uses >= 1 when set.
- A code is expired once now >= expires_at.
- Rejections are reported in order: inactive, exhausted, expired.
- Generated codes are 8 uppercase alphanumerics.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from domain.buy_code import CODE_ALPHABET, CODE_LENGTH, BuyCode, generate_code, normalize_code
from domain.errors import RedemptionErrorKind

NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def _code(**overrides) -> BuyCode:
    values = dict(buy_code_id=1, code="ABCD1234", dealer_id=7, active=True)
    values.update(overrides)
    return BuyCode(**values)


def test_usage_count_cannot_exceed_max_uses() -> None:
    """Verify a snapshot with usage above its cap is rejected."""

    with pytest.raises(ValueError):
        _code(max_uses=2, usage_count=3)


@pytest.mark.parametrize("max_uses", [0, -1])
def test_max_uses_must_be_positive(max_uses: int) -> None:
    with pytest.raises(ValueError):
        _code(max_uses=max_uses)


def test_negative_usage_count_rejected() -> None:
    with pytest.raises(ValueError):
        _code(usage_count=-1)


def test_expires_at_must_be_utc() -> None:
    """Verify naive and non-UTC expiry timestamps are rejected."""

    with pytest.raises(ValueError):
        _code(expires_at=datetime(2025, 7, 1))

    with pytest.raises(ValueError):
        _code(expires_at=datetime(2025, 7, 1, tzinfo=timezone(timedelta(hours=-5))))


def test_unlimited_code_is_never_exhausted() -> None:
    code = _code(max_uses=None, usage_count=10_000)

    assert not code.is_exhausted()
    assert code.remaining_uses is None


def test_remaining_uses_counts_down() -> None:
    assert _code(max_uses=3, usage_count=1).remaining_uses == 2
    assert _code(max_uses=3, usage_count=3).is_exhausted()


def test_expiry_boundary_is_inclusive() -> None:
    """Verify a code expiring exactly now is already expired."""

    code = _code(expires_at=NOW)

    assert code.is_expired(NOW)
    assert not code.is_expired(NOW - timedelta(seconds=1))


def test_usable_code_has_no_rejection_reason() -> None:
    assert _code(max_uses=5, usage_count=4, expires_at=NOW + timedelta(days=1)).rejection_reason(NOW) is None


def test_rejection_order_inactive_before_exhausted_before_expired() -> None:
    """Verify the first failing rule is reported when several apply."""

    everything_wrong = _code(active=False, max_uses=1, usage_count=1, expires_at=NOW)
    assert everything_wrong.rejection_reason(NOW) == RedemptionErrorKind.CODE_INACTIVE

    exhausted_and_expired = _code(max_uses=1, usage_count=1, expires_at=NOW)
    assert exhausted_and_expired.rejection_reason(NOW) == RedemptionErrorKind.CODE_EXHAUSTED

    expired_only = _code(expires_at=NOW)
    assert expired_only.rejection_reason(NOW) == RedemptionErrorKind.CODE_EXPIRED


def test_generate_code_shape() -> None:
    code = generate_code()

    assert len(code) == CODE_LENGTH
    assert all(ch in CODE_ALPHABET for ch in code)


def test_normalize_code_strips_and_uppercases() -> None:
    assert normalize_code("  abcd1234 ") == "ABCD1234"
