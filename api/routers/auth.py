"""
Auth API Endpoints.

Login for the single admin account and for dealer accounts.
"""

from fastapi import APIRouter, Depends

from api.dependencies import require_admin
from api.models import (
    AdminCheckResponse,
    DealerLoginResponse,
    DealerResponse,
    LoginRequest,
    TokenResponse,
)
from services.auth_service import Role, TokenClaims, authenticate_admin, authenticate_dealer

router = APIRouter()


@router.post(
    "/admin/login",
    response_model=TokenResponse,
    summary="Admin Login",
    description="Exchange the admin username and password for a bearer token."
)
def admin_login(request: LoginRequest):
    token = authenticate_admin(request.username, request.password)
    return TokenResponse(token=token, role=Role.ADMIN.value)


@router.get(
    "/admin/check",
    response_model=AdminCheckResponse,
    summary="Check Admin Session",
)
def admin_check(claims: TokenClaims = Depends(require_admin)):
    return AdminCheckResponse(authenticated=True, username=claims.subject)


@router.post(
    "/dealer/login",
    response_model=DealerLoginResponse,
    summary="Dealer Login",
    description="Exchange dealer credentials for a bearer token. Inactive dealers get 403."
)
def dealer_login(request: LoginRequest):
    dealer, token = authenticate_dealer(request.username, request.password)
    return DealerLoginResponse(
        token=token,
        role=Role.DEALER.value,
        dealer=DealerResponse.from_domain(dealer),
    )
