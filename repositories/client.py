"""
Supabase client initialization.

This module contains *only* the database connection setup and exposes
`get_supabase()`, which returns a single shared client for the repository
modules.

Environment variables required (see config.py):
- SUPABASE_URL: Your Supabase project URL
- SUPABASE_KEY: Your Supabase API key (use a server-side key only on the backend)

The client is created on first use so that modules importing repositories can
be loaded without credentials (tests install an in-memory client instead).
"""

from __future__ import annotations

import threading
from typing import Any, Mapping, Optional

from postgrest.exceptions import APIError
from supabase import Client, create_client  # type: ignore[import-not-found]

from config import get_settings

_client: Optional[Client] = None
_client_lock = threading.Lock()


def get_supabase() -> Client:
    """Return the shared Supabase client, creating it on first call."""

    global _client
    if _client is None:
        with _client_lock:
            if _client is None:
                url, key = get_settings().require_supabase()
                _client = create_client(url, key)
    return _client

# Postgres SQLSTATE for unique_violation
UNIQUE_VIOLATION = "23505"


class DuplicateKeyError(RuntimeError):
    """An insert or update hit a unique constraint."""


def _error_code(error: object) -> Optional[str]:
    if isinstance(error, Mapping):
        return error.get("code")
    return getattr(error, "code", None)


def check_response(response: object, action: str) -> list[dict]:
    """
    Raise RuntimeError if a Supabase response carries an error, else return rows.

    Every repository goes through this so failures read the same way. A unique
    violation raises DuplicateKeyError.
    """

    error = getattr(response, "error", None)
    if error:
        if _error_code(error) == UNIQUE_VIOLATION:
            raise DuplicateKeyError(f"Failed to {action}: {error}")
        raise RuntimeError(f"Failed to {action}: {error}")
    return getattr(response, "data", None) or []


def execute_insert(query: Any, action: str) -> list[dict]:
    """
    Execute an insert and return the created rows.

    supabase-py raises APIError for PostgREST errors; a unique violation
    becomes DuplicateKeyError, anything else propagates unchanged.
    """

    try:
        response = query.execute()
    except APIError as e:
        if e.code == UNIQUE_VIOLATION:
            raise DuplicateKeyError(f"Failed to {action}: {e.message}") from e
        raise
    return check_response(response, action)


__all__ = ["get_supabase", "check_response", "execute_insert", "DuplicateKeyError", "UNIQUE_VIOLATION"]
