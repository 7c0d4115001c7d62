"""
VIN decoding via the NHTSA vPIC registry.

The `decodevin` endpoint is free and needs no authentication. It returns a
flat list of {Variable, Value} pairs; only year, make, model and trim are kept.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

import httpx

from config import get_settings

logger = logging.getLogger(__name__)

_REQUEST_TIMEOUT = httpx.Timeout(8.0)


class VinDecodeError(Exception):
    """Raised when the registry cannot be reached or returns nothing usable."""


@dataclass(frozen=True, slots=True)
class DecodedVin:
    vin: str
    year: Optional[int]
    make: Optional[str]
    model: Optional[str]
    trim: Optional[str]

    def as_vehicle_fields(self) -> dict[str, Any]:
        """Columns for vehicle_repository, skipping values the registry left blank."""
        fields = {
            "year": self.year,
            "make": self.make,
            "model": self.model,
            "trim": self.trim,
        }
        return {k: v for k, v in fields.items() if v is not None}


def _value_for(results: Iterable[Mapping[str, Any]], variable: str) -> Optional[str]:
    for item in results:
        if item.get("Variable") == variable:
            value = item.get("Value")
            if value is None:
                return None
            text = str(value).strip()
            return text or None
    return None


def parse_decode_response(vin: str, payload: Mapping[str, Any]) -> DecodedVin:
    """Extract year/make/model/trim from a vPIC `decodevin` response body."""

    results = payload.get("Results")
    if not isinstance(results, list) or not results:
        raise VinDecodeError(f"No decode results for VIN {vin}")

    year_text = _value_for(results, "Model Year")
    year: Optional[int]
    try:
        year = int(year_text) if year_text else None
    except ValueError:
        year = None

    decoded = DecodedVin(
        vin=vin,
        year=year,
        make=_value_for(results, "Make"),
        model=_value_for(results, "Model"),
        trim=_value_for(results, "Trim"),
    )
    if decoded.make is None and decoded.model is None:
        raise VinDecodeError(f"Registry could not identify VIN {vin}")
    return decoded


def decode_vin(vin: str, client: Optional[httpx.Client] = None) -> DecodedVin:
    """
    Decode a full 17-character VIN.

    Args:
        vin: Normalized VIN
        client: Optional httpx client (tests pass one with a mock transport)

    Raises:
        VinDecodeError: on network failure, HTTP error or empty result
    """
    url = f"{get_settings().nhtsa_base_url.rstrip('/')}/decodevin/{vin}"
    owns_client = client is None
    http = client or httpx.Client(timeout=_REQUEST_TIMEOUT)

    try:
        response = http.get(url, params={"format": "json"})
        response.raise_for_status()
        payload = response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("VIN decode request failed", extra={"vin": vin, "error": str(e)})
        raise VinDecodeError(f"Failed to decode VIN {vin}") from e
    finally:
        if owns_client:
            http.close()

    return parse_decode_response(vin, payload)


__all__ = ["DecodedVin", "VinDecodeError", "decode_vin", "parse_decode_response"]
