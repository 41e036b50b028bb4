"""
User Routes

GET /users - List other users
GET /users/search/{prefix} - Search users by username prefix
GET /users/profile/{username} - Public profile
PATCH /users/me/profile - Update own profile
POST /users/{user_id}/follow - Follow / unfollow (toggle)
GET /users/me/notifications - Own notifications, newest first
PATCH /users/me/notifications/read-all - Mark every notification read
PATCH /users/me/notifications/{notification_id}/read - Mark one read
"""

from fastapi import APIRouter, Depends, Query

from jobportal.api.deps import get_graph, get_notifications, get_user_store
from jobportal.core.auth import get_current_user
from jobportal.schemas.schemas import MessageResponse, ProfileUpdate
from jobportal.services.credential_store import PrincipalStore, serialize_principal
from jobportal.services.notifications import NotificationService
from jobportal.services.relationships import RelationshipGraph

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("")
def list_users(
    limit: int = Query(100, ge=1, le=200),
    user: dict = Depends(get_current_user),
    store: PrincipalStore = Depends(get_user_store),
):
    return {"success": True, "users": store.list_all(exclude_id=user["_id"], limit=limit)}


@router.get("/search/{prefix}")
def search_users(
    prefix: str,
    user: dict = Depends(get_current_user),
    store: PrincipalStore = Depends(get_user_store),
):
    """Case-insensitive username prefix search."""
    return {"success": True, "users": store.search(prefix)}


@router.get("/profile/{username}")
def get_profile(
    username: str,
    user: dict = Depends(get_current_user),
    store: PrincipalStore = Depends(get_user_store),
):
    """Public profile, with follower counts and whether the caller follows it."""
    target = store.find_by_username(username)
    followers = target.get("followers") or []
    profile = serialize_principal(target)
    profile["followers_count"] = len(followers)
    profile["following_count"] = len(target.get("following") or [])
    profile["is_following"] = user["_id"] in followers
    return {"success": True, "user": profile}


@router.patch("/me/profile")
def update_profile(
    request: ProfileUpdate,
    user: dict = Depends(get_current_user),
    store: PrincipalStore = Depends(get_user_store),
):
    updated = store.update_profile(user["_id"], request.model_dump(exclude_unset=True))
    return {"success": True, "message": "Profile updated successfully", "user": updated}


@router.post("/{user_id}/follow")
def toggle_follow(
    user_id: str,
    user: dict = Depends(get_current_user),
    graph: RelationshipGraph = Depends(get_graph),
):
    """Follow if not following yet, unfollow otherwise."""
    result = graph.toggle_follow(user["_id"], user_id)
    return {"success": True, **result}


# ============================================================
# NOTIFICATIONS
# ============================================================

@router.get("/me/notifications")
def get_notifications_list(
    user: dict = Depends(get_current_user),
    notifications: NotificationService = Depends(get_notifications),
):
    return {
        "success": True,
        "notifications": notifications.list_notifications(user["_id"]),
        "unread_count": notifications.unread_count(user["_id"]),
    }


@router.patch("/me/notifications/read-all", response_model=MessageResponse)
def mark_all_read(
    user: dict = Depends(get_current_user),
    notifications: NotificationService = Depends(get_notifications),
):
    notifications.mark_all_read(user["_id"])
    return MessageResponse(message="All notifications marked as read")


@router.patch("/me/notifications/{notification_id}/read", response_model=MessageResponse)
def mark_one_read(
    notification_id: str,
    user: dict = Depends(get_current_user),
    notifications: NotificationService = Depends(get_notifications),
):
    notifications.mark_one_read(user["_id"], notification_id)
    return MessageResponse(message="Notification marked as read")
