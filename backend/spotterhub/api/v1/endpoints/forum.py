"""
Forum API Endpoints.

Community discussions: categories, posts, and comments.
"""

from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from spotterhub.core.database import get_db
from spotterhub.core.exceptions import NotFound
from spotterhub.core.security import Identity, get_identity
from spotterhub.models.forum import ForumComment, ForumPost
from spotterhub.modules.forum.service import ForumService, PostSort, SortOrder
from spotterhub.modules.moderation.service import ModerationService

router = APIRouter()


# ==================== Schemas ====================


class CreatePostRequest(BaseModel):
    """Create new post."""

    title: str = Field(..., min_length=1, max_length=255)
    content: str
    category_id: str | None = None
    tags: list[str] = []


class UpdatePostRequest(BaseModel):
    """Update post fields; omitted fields are left unchanged."""

    title: str | None = Field(None, min_length=1, max_length=255)
    content: str | None = None
    tags: list[str] | None = None
    reason: str | None = None


class CreateCommentRequest(BaseModel):
    """Create new comment/reply."""

    content: str = Field(..., min_length=1)
    parent_id: str | None = None


class UpdateCommentRequest(BaseModel):
    """Update comment content."""

    content: str = Field(..., min_length=1)


# ==================== Serializers ====================


def post_summary(post: ForumPost, comment_count: int) -> dict[str, Any]:
    """Post fields shown in listings and moderation responses."""
    return {
        "id": post.id,
        "title": post.title,
        "author": {"id": post.author_id, "name": post.author_name},
        "category": {
            "id": post.category.id,
            "name": post.category.name,
            "slug": post.category.slug,
        } if post.category else None,
        "tags": post.tags or [],
        "views": post.views,
        "comment_count": comment_count,
        "is_pinned": post.is_pinned,
        "is_locked": post.is_locked,
        "created_at": post.created_at.isoformat(),
        "updated_at": post.updated_at.isoformat(),
        "last_activity": post.last_activity.isoformat(),
    }


def post_detail(post: ForumPost, comment_count: int) -> dict[str, Any]:
    """Full post representation."""
    return {**post_summary(post, comment_count), "content": post.content}


def comment_detail(comment: ForumComment) -> dict[str, Any]:
    return {
        "id": comment.id,
        "post_id": comment.post_id,
        "parent_id": comment.parent_id,
        "content": comment.content,
        "author": {"id": comment.author_id, "name": comment.author_name},
        "is_edited": comment.is_edited,
        "created_at": comment.created_at.isoformat(),
        "edited_at": comment.edited_at.isoformat() if comment.edited_at else None,
    }


# ==================== Categories ====================


@router.get("/categories")
async def get_categories(
    db: AsyncSession = Depends(get_db),
) -> list[dict[str, Any]]:
    """Get all forum categories."""
    forum = ForumService(db)
    categories = await forum.get_categories()

    return [
        {
            "id": cat.id,
            "name": cat.name,
            "slug": cat.slug,
            "description": cat.description,
            "icon": cat.icon,
            "color": cat.color,
        }
        for cat in categories
    ]


@router.get("/categories/{slug}")
async def get_category(
    slug: str,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Get category by slug with its post count."""
    forum = ForumService(db)
    category = await forum.get_category_by_slug(slug)

    if not category or not category.is_active:
        raise NotFound(f"Category {slug} not found")

    return {
        "id": category.id,
        "name": category.name,
        "slug": category.slug,
        "description": category.description,
        "icon": category.icon,
        "color": category.color,
        "post_count": await forum.count_posts(category_id=category.id),
    }


# ==================== Posts ====================


@router.get("/posts")
async def get_posts(
    category: str | None = Query(None, description="Category ID"),
    author: str | None = Query(None, description="Author user ID"),
    pinned: bool | None = Query(None, description="Only pinned / unpinned posts"),
    search: str | None = Query(None, description="Search in title"),
    sort_by: PostSort = Query(PostSort.LAST_ACTIVITY),
    sort_order: SortOrder = Query(SortOrder.DESC),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Get posts with pagination, pinned first."""
    forum = ForumService(db)
    filters = {
        "category_id": category,
        "author_id": author,
        "is_pinned": pinned,
        "search": search,
    }
    posts = await forum.get_posts(
        **filters,
        sort_by=sort_by,
        sort_order=sort_order,
        limit=limit,
        offset=offset,
    )
    total = await forum.count_posts(**filters)
    counts = await forum.comment_counts([p.id for p in posts])

    return {
        "items": [post_summary(p, counts[p.id]) for p in posts],
        "total": total,
        "has_more": offset + len(posts) < total,
        "limit": limit,
        "offset": offset,
    }


@router.get("/stats")
async def get_forum_stats(
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Get forum totals with the newest and most viewed posts."""
    forum = ForumService(db)
    stats = await forum.get_forum_stats()

    listed = stats["recent_posts"] + stats["popular_posts"]
    counts = await forum.comment_counts(list({p.id for p in listed}))

    return {
        "total_posts": stats["total_posts"],
        "total_comments": stats["total_comments"],
        "recent_posts": [post_summary(p, counts[p.id]) for p in stats["recent_posts"]],
        "popular_posts": [post_summary(p, counts[p.id]) for p in stats["popular_posts"]],
    }


@router.get("/posts/{post_id}")
async def get_post(
    post_id: str,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Get post details."""
    forum = ForumService(db)

    # Count the view before loading so the returned post includes it
    await forum.increment_view_count(post_id)
    post = await forum.require_post(post_id)

    return post_detail(post, await forum.count_comments(post_id))


@router.post("/posts", status_code=201)
async def create_post(
    request: CreatePostRequest,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Create new post."""
    forum = ForumService(db)

    post = await forum.create_post(
        author=identity,
        title=request.title,
        content=request.content,
        category_id=request.category_id,
        tags=request.tags,
    )
    await db.refresh(post, ["category"])

    return post_detail(post, 0)


@router.put("/posts/{post_id}")
async def update_post(
    post_id: str,
    request: UpdatePostRequest,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Edit a post (author, or moderator with edit-any capability)."""
    moderation = ModerationService(db)

    post = await moderation.edit_post(
        post_id,
        identity,
        title=request.title,
        content=request.content,
        tags=request.tags,
        reason=request.reason,
    )

    return post_detail(post, await moderation.forum.count_comments(post_id))


# ==================== Comments ====================


@router.get("/posts/{post_id}/comments")
async def get_comments(
    post_id: str,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Get comments on a post."""
    forum = ForumService(db)
    await forum.require_post(post_id)
    comments = await forum.get_comments(post_id, limit=limit, offset=offset)

    return {
        "items": [comment_detail(c) for c in comments],
        "limit": limit,
        "offset": offset,
    }


@router.post("/posts/{post_id}/comments", status_code=201)
async def create_comment(
    post_id: str,
    request: CreateCommentRequest,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Create new comment/reply on a post."""
    forum = ForumService(db)

    comment = await forum.create_comment(
        post_id=post_id,
        author=identity,
        content=request.content,
        parent_id=request.parent_id,
    )

    return comment_detail(comment)


@router.put("/comments/{comment_id}")
async def update_comment(
    comment_id: str,
    request: UpdateCommentRequest,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Edit own comment."""
    forum = ForumService(db)
    comment = await forum.update_comment(comment_id, identity, request.content)

    return comment_detail(comment)
