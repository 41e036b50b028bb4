"""
Security primitives - password hashing and JWT issuance.

Provides:
- Password hashing with bcrypt (passlib)
- TokenIssuer: signed, time-limited bearer tokens (python-jose)
- One-way digests for reset tokens

Tokens are stateless. The only way to invalidate one before it expires
is to bump the principal's password_changed_at (see core/auth.py).
"""

import calendar
import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from jobportal.core.config import Settings
from jobportal.core.errors import Expired, InvalidSignature

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ROLE_USER = "user"
ROLE_RECRUITER = "recruiter"


def hash_password(password: str) -> str:
    """Hash password with bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify password against hash. Missing/unusable hashes never match."""
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # malformed or foreign hash format
        return False


def unusable_password_hash() -> str:
    """Hash of a random secret nobody knows (OAuth-imported accounts)."""
    return hash_password(secrets.token_urlsafe(32))


def sha256_hex(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def to_timestamp(dt: datetime) -> int:
    """Whole-second UTC timestamp; naive datetimes are treated as UTC."""
    return calendar.timegm(dt.utctimetuple())


@dataclass(frozen=True)
class TokenClaims:
    principal_id: str
    role: str
    issued_at: int
    expires_at: int


class TokenIssuer:
    """
    Creates and validates HMAC-signed JWTs.

    The decoder only accepts the configured algorithm, so a token signed
    with "none" or a different HMAC/RSA alg is rejected outright.
    """

    def __init__(self, settings: Settings):
        self.secret = settings.jwt_secret_key
        self.algorithm = settings.jwt_algorithm
        self.default_ttl = {
            ROLE_USER: timedelta(minutes=settings.user_token_ttl_minutes),
            ROLE_RECRUITER: timedelta(minutes=settings.recruiter_token_ttl_minutes),
        }

    def ttl_for(self, role: str) -> timedelta:
        return self.default_ttl.get(role, self.default_ttl[ROLE_USER])

    def issue(self, principal_id: str, role: str = ROLE_USER, ttl: Optional[timedelta] = None) -> str:
        """Create a signed token for principal_id, valid for ttl."""
        now = datetime.now(timezone.utc)
        claims = {
            "sub": str(principal_id),
            "role": role,
            "iat": now,
            "exp": now + (ttl if ttl is not None else self.ttl_for(role)),
        }
        return jwt.encode(claims, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenClaims:
        """
        Decode and verify a token.

        Raises:
            Expired: signature fine, exp in the past
            InvalidSignature: anything else (bad signature, wrong alg, garbage)
        """
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            raise Expired()
        except JWTError:
            raise InvalidSignature()

        principal_id = payload.get("sub")
        issued_at = payload.get("iat")
        if not principal_id or issued_at is None:
            raise InvalidSignature()

        return TokenClaims(
            principal_id=principal_id,
            role=payload.get("role", ROLE_USER),
            issued_at=int(issued_at),
            expires_at=int(payload.get("exp", 0)),
        )
