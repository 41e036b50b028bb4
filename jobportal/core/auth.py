"""
Session handling - turns an inbound request into an authenticated principal.

Per request:
    no token                          -> Unauthorized
    token fails signature/alg/expiry  -> Unauthorized
    principal deleted                 -> Unauthorized
    password changed after issuance   -> Unauthorized
    otherwise                         -> principal attached to the route

No token refresh happens here. Tokens are read from the
`Authorization: Bearer` header first, then from the role's cookie.
"""

from typing import Optional

from fastapi import Depends, Request, Response
from pymongo.database import Database

from jobportal.core.config import Settings, get_settings
from jobportal.core.errors import Unauthorized
from jobportal.core.log import get_logger
from jobportal.core.security import (
    ROLE_RECRUITER,
    ROLE_USER,
    TokenIssuer,
    to_timestamp,
)
from jobportal.db.mongodb import get_database
from jobportal.services.credential_store import PrincipalStore

log = get_logger(__name__)


def extract_token(request: Request, cookie_name: str) -> Optional[str]:
    """Bearer header wins over the cookie."""
    header = request.headers.get("Authorization", "")
    if header.startswith("Bearer "):
        token = header[len("Bearer "):].strip()
        if token:
            return token
    return request.cookies.get(cookie_name) or None


def changed_password_after(principal: dict, issued_at: int) -> bool:
    """True when the password was changed in a later second than the token's iat."""
    changed_at = principal.get("password_changed_at")
    if not changed_at:
        return False
    return to_timestamp(changed_at) > issued_at


class SessionResolver:
    """Validates a token and loads the principal it names."""

    def __init__(self, store: PrincipalStore, issuer: TokenIssuer):
        self.store = store
        self.issuer = issuer

    def resolve(self, token: Optional[str]) -> dict:
        if not token:
            raise Unauthorized()

        claims = self.issuer.verify(token)

        if claims.role != self.store.role:
            raise Unauthorized("Invalid token. Please log in again.")

        principal = self.store.find_by_id(claims.principal_id)
        if principal is None:
            raise Unauthorized("The user belonging to this token no longer exists.")

        if changed_password_after(principal, claims.issued_at):
            log.info("Rejected stale token for %s %s", self.store.role, claims.principal_id)
            raise Unauthorized("User recently changed password! Please log in again.")

        return principal


# ============================================================
# FastAPI dependencies
# ============================================================

def get_token_issuer(settings: Settings = Depends(get_settings)) -> TokenIssuer:
    return TokenIssuer(settings)


def get_current_user(
    request: Request,
    db: Database = Depends(get_database),
    issuer: TokenIssuer = Depends(get_token_issuer),
    settings: Settings = Depends(get_settings),
) -> dict:
    """
    FastAPI dependency - Get current authenticated user document.

    Usage:
        @router.get("/protected")
        def route(user: dict = Depends(get_current_user)):
            return user
    """
    token = extract_token(request, settings.user_cookie_name)
    return SessionResolver(PrincipalStore(db, ROLE_USER), issuer).resolve(token)


def get_current_recruiter(
    request: Request,
    db: Database = Depends(get_database),
    issuer: TokenIssuer = Depends(get_token_issuer),
    settings: Settings = Depends(get_settings),
) -> dict:
    """Dependency - Require a recruiter token and load the recruiter."""
    token = extract_token(request, settings.recruiter_cookie_name)
    return SessionResolver(PrincipalStore(db, ROLE_RECRUITER), issuer).resolve(token)


# ============================================================
# Cookie transport
# ============================================================

def set_auth_cookie(response: Response, token: str, settings: Settings, role: str = ROLE_USER) -> None:
    """httpOnly cookie; SameSite=None + Secure only in production (cross-site SPA)."""
    cookie_name = settings.recruiter_cookie_name if role == ROLE_RECRUITER else settings.user_cookie_name
    max_age = TokenIssuer(settings).ttl_for(role)
    response.set_cookie(
        key=cookie_name,
        value=token,
        max_age=int(max_age.total_seconds()),
        httponly=True,
        secure=settings.is_production,
        samesite="none" if settings.is_production else "lax",
        path="/",
        domain=(settings.cookie_domain or None) if settings.is_production else None,
    )


def clear_auth_cookie(response: Response, settings: Settings, role: str = ROLE_USER) -> None:
    cookie_name = settings.recruiter_cookie_name if role == ROLE_RECRUITER else settings.user_cookie_name
    response.delete_cookie(
        key=cookie_name,
        path="/",
        domain=(settings.cookie_domain or None) if settings.is_production else None,
        secure=settings.is_production,
        httponly=True,
        samesite="none" if settings.is_production else "lax",
    )
