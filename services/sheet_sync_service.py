"""
Batch vehicle import from a Google Sheet.

Reads the configured range (default `Vehicles!A2:J`) through the Sheets values
API. Columns, in order:

    A VIN | B year | C make | D model | E mileage | F price |
    G description | H condition | I images (comma separated) |
    J videos (comma separated)

Rows whose VIN already exists (in any status) are skipped. Rows that fail
validation are reported and not imported. Imported vehicles enter the review
queue like any other intake.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx

from config import get_settings
from domain.errors import LedgerErrorKind, WorkflowError
from domain.time import utc_now
from domain.vehicle import CertificationType, normalize_vin, validate_model_year
from repositories import vehicle_repository

logger = logging.getLogger(__name__)

SHEETS_API_URL = "https://sheets.googleapis.com/v4/spreadsheets"
_REQUEST_TIMEOUT = httpx.Timeout(15.0)
_COLUMN_COUNT = 10


@dataclass(frozen=True, slots=True)
class SheetSyncResult:
    imported: int = 0
    skipped: int = 0
    errors: List[str] = field(default_factory=list)


def _split_urls(cell: str) -> Tuple[str, ...]:
    return tuple(url.strip() for url in cell.split(",") if url.strip())


def _clean_number(cell: str) -> str:
    return cell.replace(",", "").replace("$", "").strip()


def parse_sheet_row(row: Sequence[Any], now: datetime) -> Tuple[str, Dict[str, Any]]:
    """
    Turn one sheet row into (vin, vehicle columns).

    Raises:
        ValueError: with a human-readable reason when the row is invalid
    """
    cells = [str(c).strip() if c is not None else "" for c in row]
    cells += [""] * (_COLUMN_COUNT - len(cells))
    vin_cell, year, make, model, mileage, price, description, condition, images, videos = cells[:_COLUMN_COUNT]

    vin = normalize_vin(vin_cell)
    fields: Dict[str, Any] = {}

    if year:
        try:
            fields["year"] = int(year)
        except ValueError:
            raise ValueError(f"invalid year {year!r}")
        validate_model_year(fields["year"], now)
    if make:
        fields["make"] = make
    if model:
        fields["model"] = model
    if mileage:
        try:
            fields["mileage"] = int(_clean_number(mileage))
        except ValueError:
            raise ValueError(f"invalid mileage {mileage!r}")
        if fields["mileage"] < 0:
            raise ValueError("mileage must be >= 0")
    if price:
        try:
            fields["price"] = Decimal(_clean_number(price))
        except InvalidOperation:
            raise ValueError(f"invalid price {price!r}")
        if not fields["price"].is_finite():
            raise ValueError(f"invalid price {price!r}")
        if fields["price"] <= 0:
            raise ValueError("price must be > 0")
    if description:
        fields["description"] = description
    if condition:
        try:
            fields["condition"] = CertificationType(condition)
        except ValueError:
            raise ValueError(f"unknown condition {condition!r}")
    if images:
        fields["images"] = _split_urls(images)
    if videos:
        fields["videos"] = _split_urls(videos)

    return vin, fields


def fetch_sheet_rows(client: Optional[httpx.Client] = None) -> List[List[Any]]:
    """
    Read the configured range from the sheet.

    Raises:
        WorkflowError: SHEET_UNAVAILABLE when sync is not configured or the
            API call fails
    """
    settings = get_settings()
    if not settings.google_sheet_id or not settings.google_api_key:
        raise WorkflowError(
            LedgerErrorKind.SHEET_UNAVAILABLE,
            "Google Sheets sync is not configured (GOOGLE_SHEET_ID, GOOGLE_API_KEY)",
        )

    url = f"{SHEETS_API_URL}/{settings.google_sheet_id}/values/{settings.google_sheet_range}"
    owns_client = client is None
    http = client or httpx.Client(timeout=_REQUEST_TIMEOUT)
    try:
        response = http.get(url, params={"key": settings.google_api_key})
        response.raise_for_status()
        payload = response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.error("Google Sheets request failed", extra={"error": str(e)})
        raise WorkflowError(LedgerErrorKind.SHEET_UNAVAILABLE, "Could not read the Google Sheet") from e
    finally:
        if owns_client:
            http.close()

    return list(payload.get("values") or [])


def sync_vehicles_from_sheet(
    client: Optional[httpx.Client] = None,
    now: Optional[datetime] = None,
) -> SheetSyncResult:
    """
    Import new vehicles from the sheet.

    Returns:
        SheetSyncResult with counts and one message per rejected row
        (row numbers match the sheet, starting at 2)
    """
    now = now or utc_now()
    rows = fetch_sheet_rows(client)

    parsed: List[Tuple[str, Dict[str, Any]]] = []
    errors: List[str] = []
    for row_number, row in enumerate(rows, start=2):
        if not any(str(c).strip() for c in row if c is not None):
            continue
        try:
            parsed.append(parse_sheet_row(row, now))
        except ValueError as e:
            errors.append(f"Row {row_number}: {e}")

    existing = {v.vin for v in vehicle_repository.list_vehicles_by_vins(vin for vin, _ in parsed)}

    imported = 0
    skipped = 0
    for vin, fields in parsed:
        if vin in existing:
            skipped += 1
            continue
        vehicle_repository.create_vehicle(vin, now, fields)
        existing.add(vin)
        imported += 1

    logger.info(
        "Sheet sync finished",
        extra={"imported": imported, "skipped": skipped, "error_count": len(errors)},
    )
    return SheetSyncResult(imported=imported, skipped=skipped, errors=errors)


__all__ = ["SheetSyncResult", "parse_sheet_row", "fetch_sheet_rows", "sync_vehicles_from_sheet"]
