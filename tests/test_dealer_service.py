"""
Tests for `services/dealer_service.py`.

Covers contract rules:
- Usernames are unique and passwords are stored hashed.
- Buy codes belong to an existing dealer; codes are unique and uppercase.
- maxUses must be at least 1 and expiry must lie in the future.
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from domain.errors import WorkflowError
from fakes import NOW, seed_buy_code, seed_dealer
from services import dealer_service
from services.auth_service import verify_password


def _kind(excinfo) -> str:
    return excinfo.value.kind.value


def test_create_dealer_hashes_password(db) -> None:
    dealer = dealer_service.create_dealer(
        " metro ", "s3cret-pass", "Metro Auto", "sales@metro.example",
        profile={"phone": "555-0100", "billing_contact_name": "Pat"}, now=NOW,
    )

    stored = db.row("dealers", dealer.dealer_id)
    assert dealer.username == "metro"
    assert dealer.active is True
    assert dealer.phone == "555-0100"
    assert dealer.billing_contact.name == "Pat"
    assert stored["password_hash"] != "s3cret-pass"
    assert verify_password("s3cret-pass", stored["password_hash"])


def test_create_dealer_rejects_duplicate_username(db) -> None:
    seed_dealer(db, username="metro")
    with pytest.raises(WorkflowError) as excinfo:
        dealer_service.create_dealer("metro", "s3cret-pass", "Other", "o@example.com", now=NOW)
    assert _kind(excinfo) == "duplicate_username"


def test_create_dealer_rejects_short_password(db) -> None:
    with pytest.raises(WorkflowError) as excinfo:
        dealer_service.create_dealer("metro", "short", "Metro", "m@example.com", now=NOW)
    assert _kind(excinfo) == "invalid_value"
    assert db.tables["dealers"] == []


def test_update_dealer_deactivates_and_resets_password(db) -> None:
    dealer = seed_dealer(db)

    updated = dealer_service.update_dealer(
        dealer["dealer_id"], {"active": False}, password="new-password"
    )

    assert updated.active is False
    assert verify_password("new-password", db.row("dealers", dealer["dealer_id"])["password_hash"])


def test_update_dealer_rejects_unknown_column(db) -> None:
    dealer = seed_dealer(db)
    with pytest.raises(WorkflowError) as excinfo:
        dealer_service.update_dealer(dealer["dealer_id"], {"username": "renamed"})
    assert _kind(excinfo) == "invalid_value"


def test_update_missing_dealer(db) -> None:
    with pytest.raises(WorkflowError) as excinfo:
        dealer_service.update_dealer(99, {"active": False})
    assert _kind(excinfo) == "dealer_not_found"


def test_list_dealers_by_active_flag(db) -> None:
    seed_dealer(db, username="open")
    seed_dealer(db, username="closed", active=False)

    assert [d.username for d in dealer_service.list_dealers(active=True)] == ["open"]
    assert len(dealer_service.list_dealers()) == 2


def test_issue_generated_code(db) -> None:
    dealer = seed_dealer(db)

    code = dealer_service.issue_buy_code(dealer["dealer_id"], max_uses=3, now=NOW)

    assert len(code.code) == 8
    assert code.code == code.code.upper()
    assert code.usage_count == 0
    assert code.remaining_uses == 3
    assert code.active is True


def test_issue_named_code_is_normalized(db) -> None:
    dealer = seed_dealer(db)
    code = dealer_service.issue_buy_code(dealer["dealer_id"], code=" a1b2 ", now=NOW)
    assert code.code == "A1B2"


def test_issue_duplicate_code(db) -> None:
    dealer = seed_dealer(db)
    seed_buy_code(db, dealer["dealer_id"], code="A1B2")
    with pytest.raises(WorkflowError) as excinfo:
        dealer_service.issue_buy_code(dealer["dealer_id"], code="a1b2", now=NOW)
    assert _kind(excinfo) == "duplicate_code"


@pytest.mark.parametrize(
    "kwargs",
    [{"max_uses": 0}, {"expires_at": NOW - timedelta(days=1)}, {"expires_at": NOW}],
)
def test_issue_rejects_invalid_limits(db, kwargs) -> None:
    dealer = seed_dealer(db)
    with pytest.raises(WorkflowError) as excinfo:
        dealer_service.issue_buy_code(dealer["dealer_id"], now=NOW, **kwargs)
    assert _kind(excinfo) == "invalid_value"


def test_issue_for_missing_dealer(db) -> None:
    with pytest.raises(WorkflowError) as excinfo:
        dealer_service.issue_buy_code(42, now=NOW)
    assert _kind(excinfo) == "dealer_not_found"


def test_toggle_buy_code(db) -> None:
    dealer = seed_dealer(db)
    code = seed_buy_code(db, dealer["dealer_id"])

    disabled = dealer_service.set_buy_code_active(code["buy_code_id"], False)

    assert disabled.active is False
    assert [c.active for c in dealer_service.list_buy_codes(dealer_id=dealer["dealer_id"])] == [False]
    with pytest.raises(WorkflowError) as excinfo:
        dealer_service.set_buy_code_active(999, True)
    assert _kind(excinfo) == "buy_code_not_found"


def test_username_taken_between_check_and_insert(db, monkeypatch) -> None:
    seed_dealer(db, username="metro")
    # the lookup runs before a concurrent insert commits
    monkeypatch.setattr(dealer_service.dealer_repository, "get_dealer_credentials", lambda username: None)

    with pytest.raises(WorkflowError) as excinfo:
        dealer_service.create_dealer("metro", "s3cret-pass", "Other", "o@example.com", now=NOW)

    assert _kind(excinfo) == "duplicate_username"
    assert len(db.tables["dealers"]) == 1


def test_code_taken_between_check_and_insert(db, monkeypatch) -> None:
    dealer = seed_dealer(db)
    seed_buy_code(db, dealer["dealer_id"], code="VIP-2025")
    monkeypatch.setattr(dealer_service.buy_code_repository, "get_buy_code", lambda code: None)

    with pytest.raises(WorkflowError) as excinfo:
        dealer_service.issue_buy_code(dealer["dealer_id"], code="vip-2025", now=NOW)

    assert _kind(excinfo) == "duplicate_code"
    assert len(db.tables["buy_codes"]) == 1
