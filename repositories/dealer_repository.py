"""
Dealer repository for managing dealer accounts.

Provides functions to query, create and update dealers. Password hashes are
stored here but only returned by `get_dealer_credentials` (for login).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Mapping, Optional

from domain.dealer import ContactPerson, Dealer
from domain.time import parse_optional_utc_datetime, to_iso_utc
from repositories.client import check_response, execute_insert, get_supabase

_DEALERS_TABLE: str = "dealers"

# Columns callers may change through update_dealer()
UPDATABLE_COLUMNS = frozenset({
    "dealer_name",
    "email",
    "active",
    "address",
    "contact_name",
    "phone",
    "billing_contact_name",
    "billing_contact_email",
    "billing_contact_phone",
    "title_contact_name",
    "title_contact_email",
    "title_contact_phone",
    "password_hash",
})


def _row_to_dealer(row: Mapping[str, Any]) -> Dealer:
    """Convert a Supabase row into a Dealer."""

    return Dealer(
        dealer_id=int(row["dealer_id"]),
        username=str(row["username"]),
        dealer_name=str(row["dealer_name"]),
        email=str(row["email"]),
        active=bool(row.get("active", True)),
        address=row.get("address"),
        contact_name=row.get("contact_name"),
        phone=row.get("phone"),
        billing_contact=ContactPerson(
            name=row.get("billing_contact_name"),
            email=row.get("billing_contact_email"),
            phone=row.get("billing_contact_phone"),
        ),
        title_contact=ContactPerson(
            name=row.get("title_contact_name"),
            email=row.get("title_contact_email"),
            phone=row.get("title_contact_phone"),
        ),
        created_at=parse_optional_utc_datetime(row.get("created_at_utc")),
    )


def get_dealer_by_id(dealer_id: int) -> Optional[Dealer]:
    """
    Get a dealer by ID.

    Returns:
        Dealer domain model or None if not found
    """
    response = (
        get_supabase().table(_DEALERS_TABLE)
        .select("*")
        .eq("dealer_id", dealer_id)
        .limit(1)
        .execute()
    )
    rows = check_response(response, "fetch dealer")
    return _row_to_dealer(rows[0]) if rows else None


def get_dealer_credentials(username: str) -> Optional[tuple[Dealer, str]]:
    """
    Look up a dealer and its password hash by username (login only).

    Returns:
        (Dealer, password_hash) or None if no dealer has that username
    """
    response = (
        get_supabase().table(_DEALERS_TABLE)
        .select("*")
        .eq("username", username)
        .limit(1)
        .execute()
    )
    rows = check_response(response, "fetch dealer")
    if not rows:
        return None
    return _row_to_dealer(rows[0]), str(rows[0]["password_hash"])


def list_dealers(active: Optional[bool] = None) -> List[Dealer]:
    query = get_supabase().table(_DEALERS_TABLE).select("*")
    if active is not None:
        query = query.eq("active", active)
    rows = check_response(query.order("dealer_id").execute(), "list dealers")
    return [_row_to_dealer(row) for row in rows]


def create_dealer(
    username: str,
    password_hash: str,
    dealer_name: str,
    email: str,
    created_at: datetime,
    profile: Optional[Mapping[str, Any]] = None,
) -> Dealer:
    """
    Insert a new dealer account.

    Args:
        username: Unique login name
        password_hash: Hash produced by services.auth_service.hash_password
        dealer_name: Display name of the dealership
        email: Primary email
        created_at: UTC creation timestamp
        profile: Optional contact columns (address, phone, billing_*, title_*)

    Returns:
        Created Dealer domain model
    """
    payload: dict[str, Any] = {
        "username": username,
        "password_hash": password_hash,
        "dealer_name": dealer_name,
        "email": email,
        "active": True,
        "created_at_utc": to_iso_utc(created_at, name="created_at"),
    }
    for column, value in (profile or {}).items():
        if column in UPDATABLE_COLUMNS and column != "password_hash":
            payload[column] = value

    rows = execute_insert(get_supabase().table(_DEALERS_TABLE).insert(payload), "create dealer")
    return _row_to_dealer(rows[0])


def update_dealer(dealer_id: int, fields: Mapping[str, Any]) -> Optional[Dealer]:
    """
    Apply a partial update to a dealer.

    Unknown columns raise ValueError. Returns the updated Dealer, or None if no
    dealer has that ID.
    """
    unknown = set(fields) - UPDATABLE_COLUMNS
    if unknown:
        raise ValueError(f"Cannot update dealer columns: {sorted(unknown)}")
    if not fields:
        return get_dealer_by_id(dealer_id)

    response = (
        get_supabase().table(_DEALERS_TABLE)
        .update(dict(fields))
        .eq("dealer_id", dealer_id)
        .execute()
    )
    rows = check_response(response, "update dealer")
    return _row_to_dealer(rows[0]) if rows else None


__all__ = [
    "get_dealer_by_id",
    "get_dealer_credentials",
    "list_dealers",
    "create_dealer",
    "update_dealer",
]
