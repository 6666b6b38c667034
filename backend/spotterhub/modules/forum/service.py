"""
Forum Service - Category, post and comment management.
"""

from datetime import datetime
from enum import Enum as PyEnum

from loguru import logger
from slugify import slugify
from sqlalchemy import Select, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from spotterhub.core.config import settings
from spotterhub.core.exceptions import (
    AuthenticationRequired,
    NotFound,
    PermissionDenied,
    PostLocked,
    ValidationFailed,
)
from spotterhub.core.security import Identity
from spotterhub.models.forum import ForumCategory, ForumComment, ForumPost


class PostSort(str, PyEnum):
    """Sortable post listing fields."""

    CREATED_AT = "created_at"
    LAST_ACTIVITY = "last_activity"
    VIEWS = "views"
    COMMENTS = "comments"


class SortOrder(str, PyEnum):
    ASC = "asc"
    DESC = "desc"


class ForumService:
    """
    Service for managing forum categories, posts, and comments.

    Deleted posts and comments are never returned by the read
    methods here; ``comment_count`` is always derived from the
    non-deleted comment rows.

    Usage:
        forum = ForumService(db_session)
        posts = await forum.get_posts(category_id=category.id)
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize forum service with database session."""
        self.db = db

    # ==================== Categories ====================

    async def get_categories(self) -> list[ForumCategory]:
        """Get all active categories."""
        query = (
            select(ForumCategory)
            .where(ForumCategory.is_active == True)
            .order_by(ForumCategory.sort_order)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_category(self, category_id: str) -> ForumCategory | None:
        """Get category by ID."""
        query = select(ForumCategory).where(ForumCategory.id == category_id)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_category_by_slug(self, slug: str) -> ForumCategory | None:
        """Get category by slug."""
        query = select(ForumCategory).where(ForumCategory.slug == slug)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def create_category(
        self,
        name: str,
        slug: str | None = None,
        description: str | None = None,
        icon: str | None = None,
        color: str | None = None,
        sort_order: int = 0,
    ) -> ForumCategory:
        """Create new forum category."""
        category = ForumCategory(
            name=name,
            slug=slug or slugify(name),
            description=description,
            icon=icon,
            color=color,
            sort_order=sort_order,
        )
        self.db.add(category)
        await self.db.flush()
        return category

    # ==================== Posts ====================

    def _filter_posts(
        self,
        query: Select,
        category_id: str | None = None,
        author_id: str | None = None,
        is_pinned: bool | None = None,
        search: str | None = None,
    ) -> Select:
        query = query.where(ForumPost.is_deleted == False)

        if category_id:
            query = query.where(ForumPost.category_id == category_id)
        if author_id:
            query = query.where(ForumPost.author_id == author_id)
        if is_pinned is not None:
            query = query.where(ForumPost.is_pinned == is_pinned)
        if search:
            query = query.where(ForumPost.title.ilike(f"%{search}%"))

        return query

    async def get_posts(
        self,
        category_id: str | None = None,
        author_id: str | None = None,
        is_pinned: bool | None = None,
        search: str | None = None,
        sort_by: PostSort = PostSort.LAST_ACTIVITY,
        sort_order: SortOrder = SortOrder.DESC,
        pinned_first: bool = True,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[ForumPost]:
        """
        Get non-deleted posts with pagination.

        Args:
            category_id: Filter by category
            author_id: Filter by author
            is_pinned: Filter by pinned flag
            search: Search in title
            sort_by: Field to sort by
            sort_order: Ascending or descending
            pinned_first: Show pinned posts first
            limit: Max results
            offset: Pagination offset

        Returns:
            List of posts
        """
        limit = limit or settings.forum_posts_per_page

        query = self._filter_posts(
            select(ForumPost).options(selectinload(ForumPost.category)),
            category_id=category_id,
            author_id=author_id,
            is_pinned=is_pinned,
            search=search,
        )

        if sort_by == PostSort.COMMENTS:
            column = (
                select(func.count(ForumComment.id))
                .where(
                    ForumComment.post_id == ForumPost.id,
                    ForumComment.is_deleted == False,
                )
                .correlate(ForumPost)
                .scalar_subquery()
            )
        else:
            column = getattr(ForumPost, sort_by.value)

        ordering = [column.desc() if sort_order == SortOrder.DESC else column.asc()]
        if pinned_first:
            ordering.insert(0, ForumPost.is_pinned.desc())
        ordering.append(ForumPost.created_at.desc())

        query = query.order_by(*ordering).limit(limit).offset(offset)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_post(
        self,
        post_id: str,
        include_deleted: bool = False,
    ) -> ForumPost | None:
        """Get post by ID; deleted posts only when asked for."""
        query = (
            select(ForumPost)
            .options(selectinload(ForumPost.category))
            .where(ForumPost.id == post_id)
        )
        if not include_deleted:
            query = query.where(ForumPost.is_deleted == False)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def require_post(self, post_id: str) -> ForumPost:
        """Get a non-deleted post or raise NotFound."""
        post = await self.get_post(post_id)
        if not post:
            raise NotFound(f"Post {post_id} not found")
        return post

    async def create_post(
        self,
        author: Identity,
        title: str,
        content: str,
        category_id: str | None = None,
        tags: list[str] | None = None,
        post_id: str | None = None,
    ) -> ForumPost:
        """
        Create new forum post.

        Args:
            author: Authenticated author
            title: Post title
            content: Post body (markdown)
            category_id: Category ID
            tags: Free-form tags
            post_id: Explicit ID (imports); generated when omitted

        Returns:
            Created post
        """
        if not author.is_authenticated:
            raise AuthenticationRequired("You must be logged in to create posts")
        if not title.strip():
            raise ValidationFailed("Post title must not be empty")

        if category_id and not await self.get_category(category_id):
            raise NotFound(f"Category {category_id} not found")

        post = ForumPost(
            author_id=author.id,
            author_name=author.name,
            title=title.strip(),
            content=content,
            category_id=category_id,
            tags=_normalize_tags(tags),
            last_activity=datetime.utcnow(),
        )
        if post_id:
            post.id = post_id

        self.db.add(post)
        await self.db.flush()

        logger.info(f"Post {post.id} created by {author.name} ({author.id})")
        return post

    async def update_post_fields(
        self,
        post: ForumPost,
        title: str | None = None,
        content: str | None = None,
        tags: list[str] | None = None,
    ) -> dict[str, object]:
        """
        Apply field changes to a post.

        Returns:
            The fields that actually changed
        """
        changes: dict[str, object] = {}

        if title is not None:
            if not title.strip():
                raise ValidationFailed("Post title must not be empty")
            if title.strip() != post.title:
                changes["title"] = title.strip()
        if content is not None and content != post.content:
            changes["content"] = content
        if tags is not None:
            normalized = _normalize_tags(tags)
            if normalized != post.tags:
                changes["tags"] = normalized

        for field, value in changes.items():
            setattr(post, field, value)

        if changes:
            post.updated_at = datetime.utcnow()
            await self.db.flush()
        return changes

    async def increment_view_count(self, post_id: str) -> None:
        """Increment post view count."""
        await self.db.execute(
            update(ForumPost)
            .where(ForumPost.id == post_id, ForumPost.is_deleted == False)
            .values(views=ForumPost.views + 1)
        )

    async def soft_delete_post(self, post_id: str) -> bool:
        """
        Mark a post deleted.

        Returns:
            False if the post was already deleted (or never existed)
        """
        result = await self.db.execute(
            update(ForumPost)
            .where(ForumPost.id == post_id, ForumPost.is_deleted == False)
            .values(is_deleted=True, deleted_at=datetime.utcnow())
        )
        return result.rowcount == 1

    async def count_posts(
        self,
        category_id: str | None = None,
        author_id: str | None = None,
        is_pinned: bool | None = None,
        search: str | None = None,
    ) -> int:
        """Count non-deleted posts matching the listing filters."""
        query = self._filter_posts(
            select(func.count(ForumPost.id)),
            category_id=category_id,
            author_id=author_id,
            is_pinned=is_pinned,
            search=search,
        )
        result = await self.db.execute(query)
        return result.scalar_one()

    async def get_forum_stats(self, limit: int = 5) -> dict[str, object]:
        """
        Forum overview: totals, newest posts and most viewed posts.

        Args:
            limit: Posts per list

        Returns:
            Dict with ``total_posts``, ``total_comments``,
            ``recent_posts`` and ``popular_posts``
        """
        recent = await self.get_posts(
            sort_by=PostSort.CREATED_AT, pinned_first=False, limit=limit
        )
        popular = await self.get_posts(
            sort_by=PostSort.VIEWS, pinned_first=False, limit=limit
        )

        return {
            "total_posts": await self.count_posts(),
            "total_comments": await self.count_comments(),
            "recent_posts": recent,
            "popular_posts": popular,
        }

    # ==================== Comments ====================

    async def get_comments(
        self,
        post_id: str,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[ForumComment]:
        """
        Get non-deleted comments on a post, oldest first.

        Args:
            post_id: Post ID
            limit: Max results (None for page size)
            offset: Pagination offset

        Returns:
            List of comments
        """
        limit = limit or settings.forum_comments_per_page

        query = (
            select(ForumComment)
            .where(
                ForumComment.post_id == post_id,
                ForumComment.is_deleted == False,
            )
            .order_by(ForumComment.created_at, ForumComment.id)
            .limit(limit)
            .offset(offset)
        )

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_comment(self, comment_id: str) -> ForumComment | None:
        """Get non-deleted comment by ID."""
        query = select(ForumComment).where(
            ForumComment.id == comment_id,
            ForumComment.is_deleted == False,
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def require_comment(self, comment_id: str) -> ForumComment:
        """Get a non-deleted comment or raise NotFound."""
        comment = await self.get_comment(comment_id)
        if not comment:
            raise NotFound(f"Comment {comment_id} not found")
        return comment

    async def create_comment(
        self,
        post_id: str,
        author: Identity,
        content: str,
        parent_id: str | None = None,
    ) -> ForumComment:
        """
        Create new comment on a post.

        Locked posts reject every comment, moderators included.

        Args:
            post_id: Post ID
            author: Authenticated author
            content: Comment content (markdown)
            parent_id: Parent comment ID for replies

        Returns:
            Created comment
        """
        if not author.is_authenticated:
            raise AuthenticationRequired("You must be logged in to comment")

        post = await self.require_post(post_id)
        if post.is_locked:
            raise PostLocked(f"Post {post_id} is locked")

        if not content.strip():
            raise ValidationFailed("Comment must not be empty")

        if parent_id:
            parent = await self.get_comment(parent_id)
            if not parent:
                raise ValidationFailed(f"Parent comment {parent_id} does not exist")
            if parent.post_id != post_id:
                raise ValidationFailed("Parent comment belongs to a different post")

        comment = ForumComment(
            post_id=post_id,
            author_id=author.id,
            author_name=author.name,
            content=content,
            parent_id=parent_id,
        )
        self.db.add(comment)

        post.last_activity = datetime.utcnow()
        await self.db.flush()

        logger.debug(f"Comment {comment.id} added to post {post_id} by {author.id}")
        return comment

    async def update_comment(
        self,
        comment_id: str,
        actor: Identity,
        content: str,
    ) -> ForumComment:
        """Edit own comment content."""
        comment = await self.require_comment(comment_id)

        if not actor.is_authenticated or comment.author_id != actor.id:
            raise PermissionDenied("You can only edit your own comments")
        if not content.strip():
            raise ValidationFailed("Comment must not be empty")

        now = datetime.utcnow()
        comment.content = content
        comment.is_edited = True
        comment.edited_at = now
        comment.updated_at = now

        await self.db.flush()
        return comment

    async def soft_delete_comment(self, comment_id: str) -> bool:
        """
        Mark a comment deleted.

        Returns:
            False if the comment was already deleted (or never existed)
        """
        result = await self.db.execute(
            update(ForumComment)
            .where(ForumComment.id == comment_id, ForumComment.is_deleted == False)
            .values(is_deleted=True, deleted_at=datetime.utcnow())
        )
        return result.rowcount == 1

    async def count_comments(self, post_id: str | None = None) -> int:
        """Count non-deleted comments, on one post or overall."""
        query = select(func.count(ForumComment.id)).where(
            ForumComment.is_deleted == False
        )
        if post_id:
            query = query.where(ForumComment.post_id == post_id)
        result = await self.db.execute(query)
        return result.scalar_one()

    async def comment_counts(self, post_ids: list[str]) -> dict[str, int]:
        """Derived comment counts for several posts at once."""
        if not post_ids:
            return {}
        query = (
            select(ForumComment.post_id, func.count(ForumComment.id))
            .where(
                ForumComment.post_id.in_(post_ids),
                ForumComment.is_deleted == False,
            )
            .group_by(ForumComment.post_id)
        )
        result = await self.db.execute(query)
        counts = {post_id: 0 for post_id in post_ids}
        counts.update({post_id: count for post_id, count in result.all()})
        return counts


def _normalize_tags(tags: list[str] | None) -> list[str]:
    seen: list[str] = []
    for tag in tags or []:
        tag = slugify(tag)
        if tag and tag not in seen:
            seen.append(tag)
    return seen
