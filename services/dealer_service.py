"""
Dealer account and buy code administration.

Admins create dealers, toggle them active and reset passwords, and issue buy
codes to them. Deactivating a dealer leaves its buy codes untouched; the
redemption workflow checks dealer status separately.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from domain.buy_code import BuyCode, generate_code, normalize_code
from domain.dealer import Dealer
from domain.errors import LedgerErrorKind, WorkflowError
from domain.time import utc_now
from repositories import buy_code_repository, dealer_repository
from repositories.client import DuplicateKeyError
from services.auth_service import hash_password

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8
_GENERATE_ATTEMPTS = 5


def _check_password(password: str) -> None:
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise WorkflowError(
            LedgerErrorKind.INVALID_VALUE,
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
        )


def get_dealer(dealer_id: int) -> Dealer:
    dealer = dealer_repository.get_dealer_by_id(dealer_id)
    if dealer is None:
        raise WorkflowError(LedgerErrorKind.DEALER_NOT_FOUND, "Dealer not found")
    return dealer


def list_dealers(active: Optional[bool] = None) -> List[Dealer]:
    return dealer_repository.list_dealers(active=active)


def create_dealer(
    username: str,
    password: str,
    dealer_name: str,
    email: str,
    profile: Optional[Mapping[str, Any]] = None,
    now: Optional[datetime] = None,
) -> Dealer:
    """
    Create a dealer login.

    Raises:
        WorkflowError: DUPLICATE_USERNAME if the username is taken,
            INVALID_VALUE for a short password
    """
    username = username.strip()
    _check_password(password)
    if dealer_repository.get_dealer_credentials(username) is not None:
        raise WorkflowError(LedgerErrorKind.DUPLICATE_USERNAME, f"Username {username} is already taken")

    try:
        dealer = dealer_repository.create_dealer(
            username=username,
            password_hash=hash_password(password),
            dealer_name=dealer_name.strip(),
            email=email.strip(),
            created_at=now or utc_now(),
            profile=profile,
        )
    except DuplicateKeyError:
        raise WorkflowError(LedgerErrorKind.DUPLICATE_USERNAME, f"Username {username} is already taken")
    logger.info("Dealer created", extra={"dealer_id": dealer.dealer_id, "username": username})
    return dealer


def update_dealer(
    dealer_id: int,
    fields: Mapping[str, Any],
    password: Optional[str] = None,
) -> Dealer:
    """Partial profile update; `password` (if given) is re-hashed."""

    changes: Dict[str, Any] = dict(fields)
    if password is not None:
        _check_password(password)
        changes["password_hash"] = hash_password(password)

    try:
        dealer = dealer_repository.update_dealer(dealer_id, changes)
    except ValueError as e:
        raise WorkflowError(LedgerErrorKind.INVALID_VALUE, str(e))
    if dealer is None:
        raise WorkflowError(LedgerErrorKind.DEALER_NOT_FOUND, "Dealer not found")

    if "active" in changes:
        logger.info("Dealer active flag changed", extra={"dealer_id": dealer_id, "active": dealer.active})
    return dealer


def issue_buy_code(
    dealer_id: int,
    code: Optional[str] = None,
    max_uses: Optional[int] = None,
    expires_at: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> BuyCode:
    """
    Create a buy code for an existing dealer.

    A code string is generated when none is given.

    Raises:
        WorkflowError: DEALER_NOT_FOUND, DUPLICATE_CODE or INVALID_VALUE
    """
    now = now or utc_now()
    get_dealer(dealer_id)

    if max_uses is not None and max_uses < 1:
        raise WorkflowError(LedgerErrorKind.INVALID_VALUE, "maxUses must be at least 1")
    if expires_at is not None and expires_at <= now:
        raise WorkflowError(LedgerErrorKind.INVALID_VALUE, "expiresAt must be in the future")

    if code is not None:
        code = normalize_code(code)
        if not code:
            raise WorkflowError(LedgerErrorKind.INVALID_VALUE, "Code cannot be blank")
        if buy_code_repository.get_buy_code(code) is not None:
            raise WorkflowError(LedgerErrorKind.DUPLICATE_CODE, f"Buy code {code} already exists")
    else:
        for _ in range(_GENERATE_ATTEMPTS):
            candidate = generate_code()
            if buy_code_repository.get_buy_code(candidate) is None:
                code = candidate
                break
        else:
            raise WorkflowError(LedgerErrorKind.DUPLICATE_CODE, "Could not generate a unique buy code")

    try:
        buy_code = buy_code_repository.create_buy_code(
            code,
            dealer_id,
            created_at=now,
            max_uses=max_uses,
            expires_at=expires_at,
        )
    except DuplicateKeyError:
        raise WorkflowError(LedgerErrorKind.DUPLICATE_CODE, f"Buy code {code} already exists")
    logger.info(
        "Buy code issued",
        extra={"buy_code_id": buy_code.buy_code_id, "dealer_id": dealer_id, "max_uses": max_uses},
    )
    return buy_code


def list_buy_codes(dealer_id: Optional[int] = None) -> List[BuyCode]:
    return buy_code_repository.list_buy_codes(dealer_id=dealer_id)


def set_buy_code_active(buy_code_id: int, active: bool) -> BuyCode:
    buy_code = buy_code_repository.set_buy_code_active(buy_code_id, active)
    if buy_code is None:
        raise WorkflowError(LedgerErrorKind.BUY_CODE_NOT_FOUND, "Buy code not found")
    logger.info("Buy code active flag changed", extra={"buy_code_id": buy_code_id, "active": active})
    return buy_code


__all__ = [
    "get_dealer",
    "list_dealers",
    "create_dealer",
    "update_dealer",
    "issue_buy_code",
    "list_buy_codes",
    "set_buy_code_active",
]
