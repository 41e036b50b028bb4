"""
MongoDB Service helpers shared by every domain service.

- ObjectId <-> str conversion for JSON serialization
- Parsing ids that arrive in URLs / payloads
"""

from datetime import datetime, timezone
from typing import Any, Optional

from bson import ObjectId
from bson.errors import InvalidId

from jobportal.core.errors import InvalidInput, NotFound


# ============================================================
# HELPER: Convert ObjectId to string for JSON serialization
# ============================================================

def serialize_value(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, list):
        return [serialize_value(v) for v in value]
    if isinstance(value, dict):
        return {k: serialize_value(v) for k, v in value.items()}
    return value


def serialize_doc(doc: Optional[dict]) -> Optional[dict]:
    """Convert MongoDB document to JSON-serializable dict (`_id` -> `id`)."""
    if doc is None:
        return None
    out = serialize_value(dict(doc))
    if "_id" in out:
        out["id"] = out.pop("_id")
    return out


def serialize_docs(docs: list) -> list:
    """Convert list of MongoDB documents to JSON-serializable list."""
    return [serialize_doc(doc) for doc in docs]


# ============================================================
# HELPER: ids arriving from the outside world
# ============================================================

def parse_object_id(value: Any, what: str = "Resource", strict: bool = False) -> ObjectId:
    """
    Turn a path/payload id into an ObjectId.

    A malformed id can never match a document, so by default it is
    reported as NotFound; strict=True reports it as a validation error.
    """
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        if strict:
            raise InvalidInput(f"Invalid {what.lower()} ID format")
        raise NotFound(f"{what} not found")


def utcnow() -> datetime:
    """Naive UTC now, matching what pymongo hands back."""
    return datetime.now(timezone.utc).replace(tzinfo=None)

