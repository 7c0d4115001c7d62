"""
Buy code repository (persistence).

Reads and creates buy codes and toggles their `active` flag. The usage counter
is only ever incremented by the atomic redemption function in the database;
no function here writes usage_count.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Mapping, Optional

from domain.buy_code import BuyCode, normalize_code
from domain.time import parse_optional_utc_datetime, to_iso_utc
from repositories.client import check_response, execute_insert, get_supabase

_BUY_CODES_TABLE: str = "buy_codes"


def _row_to_buy_code(row: Mapping[str, Any]) -> BuyCode:
    max_uses = row.get("max_uses")
    return BuyCode(
        buy_code_id=int(row["buy_code_id"]),
        code=str(row["code"]),
        dealer_id=int(row["dealer_id"]),
        active=bool(row.get("active", True)),
        usage_count=int(row.get("usage_count") or 0),
        max_uses=int(max_uses) if max_uses is not None else None,
        expires_at=parse_optional_utc_datetime(row.get("expires_at_utc")),
        created_at=parse_optional_utc_datetime(row.get("created_at_utc")),
    )


def get_buy_code(code: str) -> Optional[BuyCode]:
    """Look up a buy code by its code string (case-insensitive input)."""

    response = (
        get_supabase().table(_BUY_CODES_TABLE)
        .select("*")
        .eq("code", normalize_code(code))
        .limit(1)
        .execute()
    )
    rows = check_response(response, "fetch buy code")
    return _row_to_buy_code(rows[0]) if rows else None


def list_buy_codes(dealer_id: Optional[int] = None) -> List[BuyCode]:
    query = get_supabase().table(_BUY_CODES_TABLE).select("*")
    if dealer_id is not None:
        query = query.eq("dealer_id", dealer_id)
    rows = check_response(query.order("created_at_utc", desc=True).execute(), "list buy codes")
    return [_row_to_buy_code(row) for row in rows]


def create_buy_code(
    code: str,
    dealer_id: int,
    created_at: datetime,
    max_uses: Optional[int] = None,
    expires_at: Optional[datetime] = None,
) -> BuyCode:
    """
    Insert a new, active buy code with zero usage.

    Raises:
        DuplicateKeyError: the code already exists
    """

    payload: dict[str, Any] = {
        "code": normalize_code(code),
        "dealer_id": dealer_id,
        "active": True,
        "usage_count": 0,
        "max_uses": max_uses,
        "expires_at_utc": to_iso_utc(expires_at, name="expires_at") if expires_at else None,
        "created_at_utc": to_iso_utc(created_at, name="created_at"),
    }

    rows = execute_insert(get_supabase().table(_BUY_CODES_TABLE).insert(payload), "create buy code")
    return _row_to_buy_code(rows[0])


def set_buy_code_active(buy_code_id: int, active: bool) -> Optional[BuyCode]:
    """Manual admin toggle. Returns None if the code does not exist."""

    response = (
        get_supabase().table(_BUY_CODES_TABLE)
        .update({"active": active})
        .eq("buy_code_id", buy_code_id)
        .execute()
    )
    rows = check_response(response, "update buy code")
    return _row_to_buy_code(rows[0]) if rows else None


__all__ = [
    "get_buy_code",
    "list_buy_codes",
    "create_buy_code",
    "set_buy_code_active",
]
