"""
Authentication dependencies for role-based access control.

Routes declare `Depends(require_admin)` or `Depends(require_dealer)`; both read
the bearer token from the Authorization header.
"""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from services.auth_service import AuthError, Role, TokenClaims, decode_access_token

bearer_scheme = HTTPBearer(auto_error=False)


def get_token_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> TokenClaims:
    """Decode the bearer token; 401 when it is missing or invalid."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthError("Missing or invalid authorization header")
    return decode_access_token(credentials.credentials)


def require_role(required_role: Role):
    """
    Dependency factory to require a specific role.

    Usage:
        @router.get("/endpoint")
        def endpoint(claims: TokenClaims = Depends(require_role(Role.ADMIN))):
            ...
    """

    def role_checker(claims: TokenClaims = Depends(get_token_claims)) -> TokenClaims:
        if claims.role != required_role:
            raise AuthError(f"{required_role.value.capitalize()} access required", status_code=403)
        return claims

    return role_checker


require_admin = require_role(Role.ADMIN)
require_dealer = require_role(Role.DEALER)
