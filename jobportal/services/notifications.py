"""
Notification fan-out.

Notifications live inside the recipient's user document (`notifications`
array), so delivering one is a single atomic $push on the recipient.
They are never deleted; only the `read` flag changes.

Sender display fields (name, avatar) are NOT copied into the entry: they
are resolved when the mailbox is listed, so a renamed sender shows up
with the new name.
"""

from typing import List, Optional

from bson import ObjectId
from pymongo.database import Database

from jobportal.core.errors import InvalidInput, NotFound
from jobportal.core.log import get_logger
from jobportal.core.security import ROLE_RECRUITER, ROLE_USER
from jobportal.services.credential_store import PrincipalStore
from jobportal.services.mongo_service import parse_object_id, serialize_value, utcnow

log = get_logger(__name__)

NOTIFICATION_TYPES = ("follow", "like", "comment", "message", "application", "other")


class NotificationService:
    """Mailbox operations for users."""

    def __init__(self, db: Database):
        self.users = PrincipalStore(db, ROLE_USER)
        self.recruiters = PrincipalStore(db, ROLE_RECRUITER)
        self.collection = self.users.collection

    def notify(
        self,
        to_id,
        from_id,
        type: str,
        message: str,
        link: str = "",
        metadata: Optional[dict] = None,
        from_role: str = ROLE_USER,
    ) -> Optional[str]:
        """
        Append a notification to the recipient's mailbox.

        Best effort: the action that triggered it has already happened,
        so any failure here is logged and swallowed. Returns the new
        notification id, or None when nothing was written.
        """
        try:
            if type not in NOTIFICATION_TYPES:
                raise InvalidInput(f"Unknown notification type: {type}")
            recipient = parse_object_id(to_id, "User")
            notification = {
                "id": ObjectId(),
                "from": parse_object_id(from_id, "User"),
                "from_role": from_role,
                "type": type,
                "message": message,
                "link": link,
                "date": utcnow(),
                "read": False,
                "metadata": metadata or {},
            }
            result = self.collection.update_one(
                {"_id": recipient},
                {"$push": {"notifications": notification}},
            )
            if result.matched_count == 0:
                log.warning("Notification dropped: recipient %s does not exist", to_id)
                return None
            return str(notification["id"])
        except Exception:
            log.exception("Failed to deliver %s notification to %s", type, to_id)
            return None

    def _mailbox(self, principal_id) -> List[dict]:
        oid = parse_object_id(principal_id, "User")
        doc = self.collection.find_one({"_id": oid}, {"notifications": 1})
        if doc is None:
            raise NotFound("User not found")
        return doc.get("notifications") or []

    def list_notifications(self, principal_id) -> List[dict]:
        """Most recent first, each with a `sender` snapshot taken now."""
        entries = self._mailbox(principal_id)
        # entries are appended, so reverse-then-stable-sort keeps newest first on ties
        entries = sorted(reversed(entries), key=lambda n: n["date"], reverse=True)

        user_ids = [n["from"] for n in entries if n.get("from_role", ROLE_USER) == ROLE_USER]
        recruiter_ids = [n["from"] for n in entries if n.get("from_role") == ROLE_RECRUITER]
        senders = {
            ROLE_USER: self.users.snapshots(user_ids),
            ROLE_RECRUITER: self.recruiters.snapshots(recruiter_ids),
        }

        listed = []
        for entry in entries:
            item = serialize_value(dict(entry))
            item["sender"] = senders[entry.get("from_role", ROLE_USER)].get(entry["from"])
            listed.append(item)
        return listed

    def unread_count(self, principal_id) -> int:
        return sum(1 for n in self._mailbox(principal_id) if not n.get("read"))

    def mark_all_read(self, principal_id) -> int:
        """
        Set read=True on every entry. Idempotent; returns how many were unread.

        A single all-positional $set on the array elements, so entries
        pushed concurrently are kept.
        """
        oid = parse_object_id(principal_id, "User")
        unread = self.unread_count(oid)
        if unread:
            self.collection.update_one(
                {"_id": oid, "notifications.read": False},
                {"$set": {"notifications.$[].read": True}},
            )
        return unread

    def mark_one_read(self, principal_id, notification_id) -> None:
        """Set read=True on one entry. Idempotent; NotFound for unknown ids."""
        oid = parse_object_id(principal_id, "User")
        nid = parse_object_id(notification_id, "Notification")
        result = self.collection.update_one(
            {"_id": oid, "notifications.id": nid},
            {"$set": {"notifications.$.read": True}},
        )
        if result.matched_count == 0:
            raise NotFound("Notification not found")
