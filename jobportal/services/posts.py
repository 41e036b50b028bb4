"""
Post Service - the social feed.

Posts reference their author and hold embedded id-lists of likes and
comments. Author / commenter display fields are joined in at read time.
"""

from typing import List

from pymongo import DESCENDING
from pymongo.collection import Collection
from pymongo.database import Database

from jobportal.core.errors import Forbidden, NotFound
from jobportal.core.log import get_logger
from jobportal.core.security import ROLE_USER
from jobportal.db.mongodb import COLLECTIONS
from jobportal.services.credential_store import PrincipalStore
from jobportal.services.mongo_service import parse_object_id, serialize_doc, utcnow

log = get_logger(__name__)


class PostService:

    def __init__(self, db: Database):
        self.posts: Collection = db[COLLECTIONS["posts"]]
        self.comments: Collection = db[COLLECTIONS["comments"]]
        self.users = PrincipalStore(db, ROLE_USER)

    def create_post(self, user_id, description: str, image_url: str = "") -> dict:
        now = utcnow()
        doc = {
            "description": description,
            "image_url": image_url,
            "user": parse_object_id(user_id, "User"),
            "likes": [],
            "comments": [],
            "created_at": now,
            "updated_at": now,
        }
        result = self.posts.insert_one(doc)
        log.info("Post %s created by %s", result.inserted_id, user_id)
        return self.get_post(result.inserted_id)

    def get_raw(self, post_id) -> dict:
        doc = self.posts.find_one({"_id": parse_object_id(post_id, "Post")})
        if not doc:
            raise NotFound("Post not found")
        return doc

    def get_post(self, post_id) -> dict:
        return self._populate([self.get_raw(post_id)])[0]

    def list_posts(self, limit: int = 50) -> List[dict]:
        docs = list(self.posts.find().sort("created_at", DESCENDING).limit(limit))
        return self._populate(docs)

    def delete_post(self, post_id, user_id) -> None:
        """Only the author may delete; the post's comments go with it."""
        post = self.get_raw(post_id)
        if post["user"] != parse_object_id(user_id, "User"):
            raise Forbidden("Not authorized")
        self.posts.delete_one({"_id": post["_id"]})
        self.comments.delete_many({"post": post["_id"]})
        log.info("Post %s deleted", post["_id"])

    def _populate(self, docs: List[dict]) -> List[dict]:
        """Attach author and comment (with commenter) snapshots."""
        comment_ids = [cid for d in docs for cid in d.get("comments", [])]
        comments = {}
        if comment_ids:
            for c in self.comments.find({"_id": {"$in": comment_ids}}):
                comments[c["_id"]] = c

        user_ids = [d["user"] for d in docs] + [c["user"] for c in comments.values()]
        snapshots = self.users.snapshots(user_ids)

        populated = []
        for doc in docs:
            item = serialize_doc(doc)
            item["user"] = snapshots.get(doc["user"])
            item["comments"] = []
            for cid in doc.get("comments", []):
                comment = comments.get(cid)
                if comment is None:
                    continue
                c = serialize_doc(comment)
                c["user"] = snapshots.get(comment["user"])
                item["comments"].append(c)
            item["total_likes"] = len(doc.get("likes", []))
            populated.append(item)
        return populated
