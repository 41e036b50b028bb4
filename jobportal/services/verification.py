"""
Verification Flow - one-time codes and password reset tokens.

Both live inline on the principal document:
- OTP: 6-digit code + expiry + purpose, stored as-is (short-lived, low value)
- reset token: only the SHA-256 digest is stored; the plaintext goes out
  by email and cannot be recovered from a database read

Consuming either is a single conditional update that matches on the
code/digest still being present, so two concurrent uses cannot both win.
"""

import secrets
from datetime import timedelta
from typing import Optional

from jobportal.core.config import Settings
from jobportal.core.errors import InvalidInput, InvalidOrExpired
from jobportal.core.log import get_logger
from jobportal.core.security import sha256_hex
from jobportal.services.credential_store import PrincipalStore, is_email, serialize_principal
from jobportal.services.mongo_service import utcnow

log = get_logger(__name__)

PURPOSE_EMAIL_VERIFICATION = "email_verification"
PURPOSE_PASSWORD_RESET = "password_reset"
PURPOSE_PHONE_UPDATE = "phone_update"

OTP_PURPOSES = (PURPOSE_EMAIL_VERIFICATION, PURPOSE_PASSWORD_RESET, PURPOSE_PHONE_UPDATE)

OTP_FIELDS = {"otp": "", "otp_expiry": "", "otp_purpose": ""}
RESET_FIELDS = {"reset_token_hash": "", "reset_token_expiry": ""}


def generate_otp(length: int = 6) -> str:
    """Numeric code from the OS CSPRNG, zero-padded."""
    return f"{secrets.randbelow(10 ** length):0{length}d}"


class VerificationService:

    def __init__(self, store: PrincipalStore, settings: Settings):
        self.store = store
        self.otp_ttl = timedelta(minutes=settings.otp_ttl_minutes)
        self.reset_ttl = timedelta(minutes=settings.reset_token_ttl_minutes)

    # ------------------------------------------------------------
    # OTP
    # ------------------------------------------------------------

    def issue_otp(self, principal: dict, purpose: str, pending_phone: Optional[str] = None) -> str:
        """
        Store a fresh code (replacing any previous one) and return it
        for delivery over email/SMS.
        """
        if purpose not in OTP_PURPOSES:
            raise InvalidInput(f"Unknown verification purpose: {purpose}")
        if purpose == PURPOSE_PHONE_UPDATE and not pending_phone:
            raise InvalidInput("Phone number is required")

        code = generate_otp()
        updates = {
            "otp": code,
            "otp_expiry": utcnow() + self.otp_ttl,
            "otp_purpose": purpose,
        }
        if purpose == PURPOSE_PHONE_UPDATE:
            updates["pending_phone_number"] = pending_phone

        self.store.collection.update_one({"_id": principal["_id"]}, {"$set": updates})
        log.info("Issued %s OTP for %s %s", purpose, self.store.role, principal["_id"])
        return code

    def consume_otp(
        self,
        identifier: str,
        code: str,
        purpose: str,
        new_password: Optional[str] = None,
    ) -> dict:
        """
        Check and burn a code, then apply what it was issued for:

            email_verification -> is_verified = True
            password_reset     -> new password, password_changed_at bumped
            phone_update       -> pending_phone_number becomes phone_number

        Raises:
            InvalidOrExpired: no matching unexpired code for this purpose
            InvalidInput: password_reset without new_password
        """
        if purpose == PURPOSE_PASSWORD_RESET and not new_password:
            raise InvalidInput("New password is required")

        identifier = (identifier or "").strip().lower()
        key = "email" if is_email(identifier) else "username"
        query = {
            key: identifier,
            "otp": str(code).strip(),
            "otp_purpose": purpose,
            "otp_expiry": {"$gt": utcnow()},
        }
        principal = self.store.collection.find_one(query)
        if not principal:
            raise InvalidOrExpired("Invalid OTP or OTP has expired")

        updates = {"updated_at": utcnow()}
        unset = dict(OTP_FIELDS)
        if purpose == PURPOSE_EMAIL_VERIFICATION:
            updates["is_verified"] = True
        elif purpose == PURPOSE_PASSWORD_RESET:
            updates.update(self.store.password_update_fields(new_password))
        elif purpose == PURPOSE_PHONE_UPDATE:
            updates["phone_number"] = principal.get("pending_phone_number")
            unset["pending_phone_number"] = ""

        # still-present code in the filter makes this the single use
        result = self.store.collection.update_one(
            {"_id": principal["_id"], "otp": query["otp"], "otp_purpose": purpose},
            {"$set": updates, "$unset": unset},
        )
        if result.modified_count == 0:
            raise InvalidOrExpired("Invalid OTP or OTP has expired")

        log.info("Consumed %s OTP for %s %s", purpose, self.store.role, principal["_id"])
        return serialize_principal(self.store.get_by_id(principal["_id"]))

    # ------------------------------------------------------------
    # Reset token
    # ------------------------------------------------------------

    def issue_reset_token(self, principal: dict) -> str:
        """Return a random plaintext token; only its digest is persisted."""
        token = secrets.token_hex(32)
        self.store.collection.update_one(
            {"_id": principal["_id"]},
            {"$set": {
                "reset_token_hash": sha256_hex(token),
                "reset_token_expiry": utcnow() + self.reset_ttl,
            }},
        )
        return token

    def consume_reset_token(self, plaintext_token: str, new_password: str) -> dict:
        """
        Raises:
            InvalidOrExpired: unknown, already used or expired token
        """
        digest = sha256_hex(plaintext_token or "")
        principal = self.store.collection.find_one({
            "reset_token_hash": digest,
            "reset_token_expiry": {"$gt": utcnow()},
        })
        if not principal:
            raise InvalidOrExpired("Token is invalid or has expired")

        result = self.store.collection.update_one(
            {"_id": principal["_id"], "reset_token_hash": digest},
            {"$set": self.store.password_update_fields(new_password), "$unset": dict(RESET_FIELDS)},
        )
        if result.modified_count == 0:
            raise InvalidOrExpired("Token is invalid or has expired")

        log.info("Password reset via token for %s %s", self.store.role, principal["_id"])
        return serialize_principal(self.store.get_by_id(principal["_id"]))
