"""
Post Routes

POST /posts - Create post
GET /posts - Feed, newest first
GET /posts/{post_id} - Single post with comments
DELETE /posts/{post_id} - Delete own post
POST /posts/{post_id}/like - Like / unlike (toggle)
POST /posts/{post_id}/comments - Add comment
DELETE /posts/{post_id}/comments/{comment_id} - Delete own comment
"""

from fastapi import APIRouter, Depends, Query

from jobportal.api.deps import get_graph, get_post_service
from jobportal.core.auth import get_current_user
from jobportal.schemas.schemas import CommentCreate, MessageResponse, PostCreate
from jobportal.services.posts import PostService
from jobportal.services.relationships import RelationshipGraph

router = APIRouter(prefix="/posts", tags=["Posts"])


@router.post("", status_code=201)
def create_post(
    request: PostCreate,
    user: dict = Depends(get_current_user),
    posts: PostService = Depends(get_post_service),
):
    post = posts.create_post(user["_id"], request.description, request.image_url or "")
    return {"success": True, "message": "Post created", "post": post}


@router.get("")
def list_posts(
    limit: int = Query(50, ge=1, le=100),
    posts: PostService = Depends(get_post_service),
):
    return {"success": True, "posts": posts.list_posts(limit=limit)}


@router.get("/{post_id}")
def get_post(post_id: str, posts: PostService = Depends(get_post_service)):
    return {"success": True, "post": posts.get_post(post_id)}


@router.delete("/{post_id}", response_model=MessageResponse)
def delete_post(
    post_id: str,
    user: dict = Depends(get_current_user),
    posts: PostService = Depends(get_post_service),
):
    posts.delete_post(post_id, user["_id"])
    return MessageResponse(message="Post deleted")


@router.post("/{post_id}/like")
def toggle_like(
    post_id: str,
    user: dict = Depends(get_current_user),
    graph: RelationshipGraph = Depends(get_graph),
):
    liked, total = graph.toggle_like(post_id, user["_id"])
    return {
        "success": True,
        "message": "Post liked" if liked else "Post unliked",
        "liked": liked,
        "total_likes": total,
    }


@router.post("/{post_id}/comments", status_code=201)
def add_comment(
    post_id: str,
    request: CommentCreate,
    user: dict = Depends(get_current_user),
    graph: RelationshipGraph = Depends(get_graph),
):
    comment_id = graph.add_comment(post_id, user["_id"], request.text_message)
    return {"success": True, "message": "Comment added", "comment_id": comment_id}


@router.delete("/{post_id}/comments/{comment_id}", response_model=MessageResponse)
def delete_comment(
    post_id: str,
    comment_id: str,
    user: dict = Depends(get_current_user),
    graph: RelationshipGraph = Depends(get_graph),
):
    graph.remove_comment(post_id, comment_id, user["_id"])
    return MessageResponse(message="Comment deleted")
