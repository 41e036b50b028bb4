"""
Credential Store - persisted principals (users and recruiters).

One collection per role. Each document is self-contained: identity,
password hash, profile, embedded follow edges, notifications and inline
verification state (OTP / reset token).

Uniqueness of email (and username for users) is enforced by the unique
indexes created in db/mongodb.py; a DuplicateKeyError becomes Conflict.
"""

import re
import secrets
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from jobportal.core.errors import Conflict, NotFound
from jobportal.core.log import get_logger
from jobportal.core.security import (
    ROLE_RECRUITER,
    ROLE_USER,
    hash_password,
    unusable_password_hash,
    verify_password,
)
from jobportal.db.mongodb import COLLECTIONS
from jobportal.services.mongo_service import parse_object_id, serialize_doc, utcnow

log = get_logger(__name__)

EMAIL_PATTERN = re.compile(r"^\S+@\S+\.\S+$")

# Never leave the server
PRIVATE_FIELDS = (
    "password_hash",
    "otp",
    "otp_expiry",
    "otp_purpose",
    "pending_phone_number",
    "reset_token_hash",
    "reset_token_expiry",
    "notifications",
)

PROFILE_FIELDS = ("bio", "skills", "experience", "education", "profile_photo", "resume")


def is_email(identifier: str) -> bool:
    return bool(EMAIL_PATTERN.match(identifier or ""))


def serialize_principal(doc: Optional[dict]) -> Optional[dict]:
    """Outward representation of a principal: no hash, no codes, no mailbox."""
    if doc is None:
        return None
    public = {k: v for k, v in doc.items() if k not in PRIVATE_FIELDS}
    return serialize_doc(public)


class PrincipalStore:
    """
    CRUD over one principal collection.

    Usage:
        users = PrincipalStore(db, ROLE_USER)
        user = users.create_principal({...})
    """

    def __init__(self, db: Database, role: str = ROLE_USER):
        self.role = role
        name = COLLECTIONS["recruiters"] if role == ROLE_RECRUITER else COLLECTIONS["users"]
        self.collection: Collection = db[name]

    # ------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------

    def create_principal(self, fields: Dict[str, Any]) -> dict:
        """
        Persist a new principal.

        `fields` may carry a plaintext `password`; it is hashed and dropped.
        Returns the created record without password hash.

        Raises:
            Conflict: email or username already registered
        """
        doc = dict(fields)
        doc["email"] = doc["email"].strip().lower()
        if doc.get("username"):
            doc["username"] = doc["username"].strip().lower()

        self._ensure_unique(doc["email"], doc.get("username"))

        password = doc.pop("password", None)
        if password is not None:
            doc["password_hash"] = hash_password(password)

        now = utcnow()
        doc.setdefault("is_verified", False)
        doc.setdefault("created_at", now)
        doc["updated_at"] = now
        if self.role == ROLE_USER:
            doc.setdefault("profile", {})
            doc.setdefault("followers", [])
            doc.setdefault("following", [])
            doc.setdefault("notifications", [])

        try:
            result = self.collection.insert_one(doc)
        except DuplicateKeyError as e:
            # lost a race with a concurrent signup
            raise Conflict(self._duplicate_message(e))

        doc["_id"] = result.inserted_id
        log.info("Created %s %s", self.role, result.inserted_id)
        return serialize_principal(doc)

    def _ensure_unique(self, email: str, username: Optional[str]) -> None:
        if self.collection.find_one({"email": email}, {"_id": 1}):
            raise Conflict("Email already exists")
        if username and self.collection.find_one({"username": username}, {"_id": 1}):
            raise Conflict("Username already taken")

    @staticmethod
    def _duplicate_message(error: DuplicateKeyError) -> str:
        details = error.details or {}
        key = details.get("keyPattern") or details.get("keyValue") or {}
        if "username" in key:
            return "Username already taken"
        return "Email already exists"

    def import_external_principal(
        self,
        external_id: str,
        email: str,
        fullname: str = "",
        provider: str = "oauth",
        profile_photo: str = "",
    ) -> dict:
        """
        Upsert an account created by an external identity provider.

        The local password principal is the canonical shape: imported
        accounts get a generated username and an unusable password hash,
        so they can only sign in through the provider until a password
        reset sets a real one.
        """
        email = email.strip().lower()
        existing = self.collection.find_one({"$or": [{"external_id": external_id}, {"email": email}]})
        now = utcnow()

        if existing:
            updates = {"external_id": external_id, "auth_provider": provider, "updated_at": now}
            if fullname:
                updates["fullname"] = fullname
            if profile_photo:
                updates["profile.profile_photo"] = profile_photo
            doc = self.collection.find_one_and_update(
                {"_id": existing["_id"]},
                {"$set": updates},
                return_document=ReturnDocument.AFTER,
            )
            return serialize_principal(doc)

        fields = {
            "email": email,
            "username": self._generate_username(email),
            "fullname": fullname or email.split("@")[0],
            "password_hash": unusable_password_hash(),
            "external_id": external_id,
            "auth_provider": provider,
            "is_verified": True,
        }
        if self.role == ROLE_USER:
            fields["profile"] = {"profile_photo": profile_photo} if profile_photo else {}
        return self.create_principal(fields)

    def _generate_username(self, email: str) -> str:
        base = re.sub(r"[^a-z0-9_.]", "", email.split("@")[0].lower()) or "user"
        candidate = base
        while self.collection.find_one({"username": candidate}, {"_id": 1}):
            candidate = f"{base}{secrets.randbelow(10000)}"
        return candidate

    # ------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------

    def get_by_id(self, principal_id) -> dict:
        """Raw document (hash included) by id. NotFound if absent."""
        oid = parse_object_id(principal_id, self.role.capitalize())
        doc = self.collection.find_one({"_id": oid})
        if not doc:
            raise NotFound(f"{self.role.capitalize()} not found")
        return doc

    def find_by_id(self, principal_id) -> Optional[dict]:
        """Like get_by_id but returns None instead of raising."""
        try:
            return self.get_by_id(principal_id)
        except NotFound:
            return None

    def find_by_identifier(self, identifier: str) -> dict:
        """
        Resolve by email when the identifier looks like one, else by username.

        Raises:
            NotFound: no such principal
        """
        identifier = (identifier or "").strip().lower()
        if is_email(identifier):
            doc = self.collection.find_one({"email": identifier})
        else:
            doc = self.collection.find_one({"username": identifier})
        if not doc:
            raise NotFound(f"{self.role.capitalize()} not found")
        return doc

    def find_by_username(self, username: str) -> dict:
        doc = self.collection.find_one({"username": username.strip().lower()})
        if not doc:
            raise NotFound("User not found")
        return doc

    def search(self, prefix: str, limit: int = 20) -> List[dict]:
        """Users whose username starts with prefix (case-insensitive)."""
        pattern = "^" + re.escape(prefix.strip().lower())
        cursor = self.collection.find({"username": {"$regex": pattern}}).limit(limit)
        return [serialize_principal(d) for d in cursor]

    def list_all(self, exclude_id: Optional[ObjectId] = None, limit: int = 100) -> List[dict]:
        query = {"_id": {"$ne": exclude_id}} if exclude_id else {}
        cursor = self.collection.find(query).sort("created_at", -1).limit(limit)
        return [serialize_principal(d) for d in cursor]

    # ------------------------------------------------------------
    # Passwords
    # ------------------------------------------------------------

    def verify_password(self, principal: dict, plaintext: str) -> bool:
        """bcrypt comparison; callers turn False into Unauthorized."""
        return verify_password(plaintext, principal.get("password_hash"))

    @staticmethod
    def password_update_fields(new_plaintext: str) -> Dict[str, Any]:
        """$set payload for any password change after signup."""
        now = utcnow()
        return {
            "password_hash": hash_password(new_plaintext),
            "password_changed_at": now,
            "updated_at": now,
        }

    def update_password(self, principal_id, new_plaintext: str) -> None:
        """
        Rehash and persist. Bumps password_changed_at so every token
        issued before now is rejected by the session resolver.
        """
        oid = parse_object_id(principal_id, self.role.capitalize())
        result = self.collection.update_one(
            {"_id": oid},
            {"$set": self.password_update_fields(new_plaintext)},
        )
        if result.matched_count == 0:
            raise NotFound(f"{self.role.capitalize()} not found")
        log.info("Password changed for %s %s", self.role, oid)

    # ------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------

    def update_fields(self, principal_id, updates: Dict[str, Any]) -> dict:
        """Partial $set update; returns the serialized record."""
        oid = parse_object_id(principal_id, self.role.capitalize())
        updates = dict(updates)
        updates["updated_at"] = utcnow()
        try:
            doc = self.collection.find_one_and_update(
                {"_id": oid},
                {"$set": updates},
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError as e:
            raise Conflict(self._duplicate_message(e))
        if not doc:
            raise NotFound(f"{self.role.capitalize()} not found")
        return serialize_principal(doc)

    def update_profile(self, principal_id, fields: Dict[str, Any]) -> dict:
        """
        Update top-level display fields and the profile sub-document.
        Only keys that are present (not None) are written.
        """
        updates = {}
        for key, value in fields.items():
            if value is None:
                continue
            if key in PROFILE_FIELDS:
                updates[f"profile.{key}"] = value
            else:
                updates[key] = value
        return self.update_fields(principal_id, updates)

    @staticmethod
    def public_snapshot(principal: Optional[dict]) -> Optional[dict]:
        """Display fields other documents embed at read time."""
        if principal is None:
            return None
        profile = principal.get("profile") or {}
        return {
            "id": str(principal["_id"]),
            "fullname": principal.get("fullname") or principal.get("company_name", ""),
            "username": principal.get("username"),
            "profile_photo": profile.get("profile_photo", principal.get("company_logo", "")),
        }

    def snapshots(self, ids: List[ObjectId]) -> Dict[ObjectId, dict]:
        """Batch public snapshots keyed by ObjectId."""
        unique_ids = list({i for i in ids if i is not None})
        if not unique_ids:
            return {}
        projection = {"fullname": 1, "company_name": 1, "username": 1, "profile": 1, "company_logo": 1}
        cursor = self.collection.find({"_id": {"$in": unique_ids}}, projection)
        return {d["_id"]: self.public_snapshot(d) for d in cursor}
