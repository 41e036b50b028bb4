"""
Relationship Graph - follow edges between users, like/comment edges on posts.

Follow edges are stored on both ends:

    A.following contains B  <=>  B.followers contains A

MongoDB offers no cross-document atomicity without a replica-set
transaction, so a toggle is two single-document writes treated as one
logical operation. Each write is idempotent ($addToSet / $pull) and the
edge state is read from the follower's side, so a retried toggle repairs
a lagging side. If the second write raises, the first one is reverted
before the error propagates. A process dying between the two writes can
still leave one side lagging.
"""

from typing import Tuple

from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import PyMongoError

from jobportal.core.errors import Forbidden, InvalidOperation, NotFound
from jobportal.core.log import get_logger
from jobportal.core.security import ROLE_USER
from jobportal.db.mongodb import COLLECTIONS
from jobportal.services.credential_store import PrincipalStore
from jobportal.services.mongo_service import parse_object_id, utcnow
from jobportal.services.notifications import NotificationService

log = get_logger(__name__)


def display_name(principal: dict) -> str:
    return principal.get("fullname") or principal.get("username") or "Someone"


class RelationshipGraph:

    def __init__(self, db: Database, notifications: NotificationService = None):
        self.users = PrincipalStore(db, ROLE_USER)
        self.posts = db[COLLECTIONS["posts"]]
        self.comments = db[COLLECTIONS["comments"]]
        self.notifications = notifications or NotificationService(db)

    # ------------------------------------------------------------
    # Follow
    # ------------------------------------------------------------

    def toggle_follow(self, follower_id, target_id) -> dict:
        """
        Follow target if not yet following, unfollow otherwise.

        Raises:
            InvalidOperation: follower_id == target_id (nothing is written)
            NotFound: either user does not exist
        """
        follower_oid = parse_object_id(follower_id, "User")
        target_oid = parse_object_id(target_id, "User")
        if follower_oid == target_oid:
            raise InvalidOperation("You cannot follow yourself")

        follower = self.users.get_by_id(follower_oid)
        target = self.users.get_by_id(target_oid)

        unfollow = target_oid in (follower.get("following") or [])
        op = "$pull" if unfollow else "$addToSet"
        undo = "$addToSet" if unfollow else "$pull"

        users = self.users.collection
        users.update_one({"_id": follower_oid}, {op: {"following": target_oid}})
        try:
            users.update_one({"_id": target_oid}, {op: {"followers": follower_oid}})
        except PyMongoError:
            log.error("Follow toggle %s -> %s failed on target side, reverting", follower_oid, target_oid)
            users.update_one({"_id": follower_oid}, {undo: {"following": target_oid}})
            raise

        if not unfollow:
            self.notifications.notify(
                target_oid,
                follower_oid,
                "follow",
                f"{display_name(follower)} started following you",
                link=f"/profile/{follower.get('username', '')}",
            )

        updated_target = users.find_one({"_id": target_oid}, {"followers": 1})
        return {
            "following": not unfollow,
            "followers_count": len((updated_target or {}).get("followers") or []),
            "message": "Unfollowed" if unfollow else "Followed",
        }

    # ------------------------------------------------------------
    # Likes
    # ------------------------------------------------------------

    def toggle_like(self, post_id, user_id) -> Tuple[bool, int]:
        """Returns (liked, total_likes) after the toggle."""
        post_oid = parse_object_id(post_id, "Post")
        user_oid = parse_object_id(user_id, "User")

        post = self.posts.find_one({"_id": post_oid}, {"likes": 1, "user": 1})
        if not post:
            raise NotFound("Post not found")

        unlike = user_oid in (post.get("likes") or [])
        op = "$pull" if unlike else "$addToSet"
        updated = self.posts.find_one_and_update(
            {"_id": post_oid},
            {op: {"likes": user_oid}},
            projection={"likes": 1},
            return_document=ReturnDocument.AFTER,
        )
        if updated is None:
            raise NotFound("Post not found")

        if not unlike and post["user"] != user_oid:
            liker = self.users.find_by_id(user_oid) or {}
            self.notifications.notify(
                post["user"],
                user_oid,
                "like",
                f"{display_name(liker)} liked your post",
                link=f"/posts/{post_oid}",
                metadata={"post_id": str(post_oid)},
            )

        return not unlike, len(updated.get("likes") or [])

    # ------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------

    def add_comment(self, post_id, user_id, text_message: str) -> str:
        """Create a comment owned by (post, user); returns its id."""
        post_oid = parse_object_id(post_id, "Post")
        user_oid = parse_object_id(user_id, "User")

        post = self.posts.find_one({"_id": post_oid}, {"user": 1})
        if not post:
            raise NotFound("Post not found")

        comment = {
            "text_message": text_message,
            "user": user_oid,
            "post": post_oid,
            "created_at": utcnow(),
        }
        comment_oid = self.comments.insert_one(comment).inserted_id
        try:
            self.posts.update_one({"_id": post_oid}, {"$push": {"comments": comment_oid}})
        except PyMongoError:
            log.error("Attaching comment %s to post %s failed, removing it", comment_oid, post_oid)
            self.comments.delete_one({"_id": comment_oid})
            raise

        if post["user"] != user_oid:
            commenter = self.users.find_by_id(user_oid) or {}
            self.notifications.notify(
                post["user"],
                user_oid,
                "comment",
                f"{display_name(commenter)} commented on your post",
                link=f"/posts/{post_oid}",
                metadata={"post_id": str(post_oid), "comment_id": str(comment_oid)},
            )
        return str(comment_oid)

    def remove_comment(self, post_id, comment_id, user_id) -> None:
        """
        Delete a comment and detach it from its post.

        Raises:
            NotFound: no such comment on that post
            Forbidden: caller is not the comment's author
        """
        post_oid = parse_object_id(post_id, "Post")
        comment_oid = parse_object_id(comment_id, "Comment")
        user_oid = parse_object_id(user_id, "User")

        comment = self.comments.find_one({"_id": comment_oid})
        if not comment or comment.get("post") != post_oid:
            raise NotFound("Comment not found")
        if comment["user"] != user_oid:
            raise Forbidden("Not authorized to delete this comment")

        self.comments.delete_one({"_id": comment_oid})
        self.posts.update_one({"_id": post_oid}, {"$pull": {"comments": comment_oid}})
