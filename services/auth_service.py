"""
Authentication service.

Stateless bearer tokens: a signed JWT carries the caller's role ("admin" or
"dealer") and subject (the admin username or the dealer ID). Tokens are
verified on every request; there is no server-side session table.

Passwords are hashed with PBKDF2-SHA256 via passlib.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from config import get_settings
from domain.dealer import Dealer
from domain.time import utc_now
from repositories.dealer_repository import get_dealer_credentials

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


class Role(str, Enum):
    ADMIN = "admin"
    DEALER = "dealer"


class AuthError(Exception):
    """Raised when credentials or a token are rejected."""

    def __init__(self, message: str, status_code: int = 401) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


@dataclass(frozen=True, slots=True)
class TokenClaims:
    subject: str
    role: Role
    expires_at: datetime

    @property
    def dealer_id(self) -> int:
        if self.role != Role.DEALER:
            raise ValueError("Token does not belong to a dealer")
        return int(self.subject)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: Optional[str]) -> bool:
    if not hashed:
        return False
    try:
        return pwd_context.verify(plain, hashed)
    except ValueError:
        # Malformed hash in storage/config
        logger.warning("Stored password hash could not be parsed")
        return False


def create_access_token(
    subject: str,
    role: Role,
    now: Optional[datetime] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a signed JWT with role claim.

    Args:
        subject: Admin username or dealer ID (as string)
        role: Caller role
        now: Issue time (defaults to current UTC time)
        expires_delta: Lifetime (defaults to ACCESS_TOKEN_EXPIRE_MINUTES)

    Returns:
        Encoded token string
    """
    settings = get_settings()
    now = now or utc_now()
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)

    payload = {
        "sub": subject,
        "role": role.value,
        "iat": int(now.timestamp()),
        "exp": int((now + expires_delta).timestamp()),
    }
    return jwt.encode(payload, settings.require_jwt_secret(), algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> TokenClaims:
    """Verify signature and expiry; raise AuthError on any problem."""

    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.require_jwt_secret(),
            algorithms=[settings.jwt_algorithm],
        )
    except ExpiredSignatureError:
        raise AuthError("Token has expired")
    except JWTError:
        raise AuthError("Invalid token")

    try:
        role = Role(payload.get("role"))
    except ValueError:
        raise AuthError("Invalid token")

    subject = payload.get("sub")
    if not subject:
        raise AuthError("Invalid token")

    return TokenClaims(
        subject=str(subject),
        role=role,
        expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc),
    )


def authenticate_admin(username: str, password: str) -> str:
    """Check the configured admin credentials and return a token."""

    settings = get_settings()
    if not settings.admin_username or not settings.admin_password_hash:
        logger.error("Admin login attempted but ADMIN_USERNAME/ADMIN_PASSWORD_HASH are not set")
        raise AuthError("Admin login is not configured", status_code=503)

    if username != settings.admin_username or not verify_password(password, settings.admin_password_hash):
        logger.info("Rejected admin login", extra={"username": username})
        raise AuthError("Invalid username or password")

    return create_access_token(username, Role.ADMIN)


def authenticate_dealer(username: str, password: str) -> tuple[Dealer, str]:
    """
    Check dealer credentials.

    Returns:
        (Dealer, token)

    Raises:
        AuthError: 401 for bad credentials, 403 for a deactivated dealer
    """
    found = get_dealer_credentials(username)
    if found is None or not verify_password(password, found[1]):
        logger.info("Rejected dealer login", extra={"username": username})
        raise AuthError("Invalid username or password")

    dealer, _ = found
    if not dealer.is_active():
        raise AuthError("Dealer account is inactive", status_code=403)

    return dealer, create_access_token(str(dealer.dealer_id), Role.DEALER)


__all__ = [
    "Role",
    "AuthError",
    "TokenClaims",
    "hash_password",
    "verify_password",
    "create_access_token",
    "decode_access_token",
    "authenticate_admin",
    "authenticate_dealer",
]
