"""
Application settings.

All configuration comes from environment variables, optionally loaded from a
`.env` file at the project root. Settings are read once and cached; tests call
`get_settings.cache_clear()` after changing the environment.

Required values are only checked where they are used (database client, token
signing), so the API can import without a fully configured environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv

# Look for .env next to this file (project root)
env_path = Path(__file__).parent / ".env"
load_dotenv(dotenv_path=env_path)

MIN_JWT_SECRET_LENGTH = 32


@dataclass(frozen=True, slots=True)
class Settings:
    """Snapshot of the environment-driven configuration."""

    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None

    # Auth
    jwt_secret: Optional[str] = None
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 720
    admin_username: Optional[str] = None
    admin_password_hash: Optional[str] = None

    # Collaborators
    media_bucket: str = "vehicle-media"
    nhtsa_base_url: str = "https://vpic.nhtsa.dot.gov/api/vehicles"
    google_sheet_id: Optional[str] = None
    google_api_key: Optional[str] = None
    google_sheet_range: str = "Vehicles!A2:J"

    # Workflow
    offer_ttl_hours: int = 48

    # HTTP / ops
    cors_origins: Tuple[str, ...] = field(default=("*",))
    log_level: str = "INFO"

    def require_supabase(self) -> tuple[str, str]:
        """Return (url, key) or raise with setup instructions."""
        if not self.supabase_url:
            raise RuntimeError(
                "Missing environment variable: SUPABASE_URL. "
                "Set SUPABASE_URL to your Supabase project URL."
            )
        if not self.supabase_key:
            raise RuntimeError(
                "Missing environment variable: SUPABASE_KEY. "
                "Set SUPABASE_KEY to your Supabase API key (server-side key only)."
            )
        return self.supabase_url, self.supabase_key

    def require_jwt_secret(self) -> str:
        """Return the token signing secret or raise with setup instructions."""
        if not self.jwt_secret:
            raise RuntimeError(
                "Missing environment variable: JWT_SECRET. "
                "Generate a random string of at least 32 characters."
            )
        if len(self.jwt_secret) < MIN_JWT_SECRET_LENGTH:
            raise RuntimeError(
                f"JWT_SECRET must be at least {MIN_JWT_SECRET_LENGTH} characters"
            )
        return self.jwt_secret


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Read settings from the environment (cached)."""

    origins = os.getenv("CORS_ORIGINS", "*")

    return Settings(
        supabase_url=os.getenv("SUPABASE_URL"),
        supabase_key=os.getenv("SUPABASE_KEY"),
        jwt_secret=os.getenv("JWT_SECRET"),
        jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
        access_token_expire_minutes=_int_env("ACCESS_TOKEN_EXPIRE_MINUTES", 720),
        admin_username=os.getenv("ADMIN_USERNAME"),
        admin_password_hash=os.getenv("ADMIN_PASSWORD_HASH"),
        media_bucket=os.getenv("MEDIA_BUCKET", "vehicle-media"),
        nhtsa_base_url=os.getenv("NHTSA_BASE_URL", "https://vpic.nhtsa.dot.gov/api/vehicles"),
        google_sheet_id=os.getenv("GOOGLE_SHEET_ID"),
        google_api_key=os.getenv("GOOGLE_API_KEY"),
        google_sheet_range=os.getenv("GOOGLE_SHEET_RANGE", "Vehicles!A2:J"),
        offer_ttl_hours=_int_env("OFFER_TTL_HOURS", 48),
        cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()) or ("*",),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


__all__ = ["Settings", "get_settings"]
