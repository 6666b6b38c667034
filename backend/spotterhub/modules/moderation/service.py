"""
Moderation Service - pin, lock, delete, edit and move forum content.
"""

from datetime import datetime
from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from spotterhub.core.exceptions import NotFound, PermissionDenied, ValidationFailed
from spotterhub.core.security import Identity
from spotterhub.models.forum import ForumComment, ForumPost
from spotterhub.models.moderation import (
    ActionType,
    ModerationAction,
    TargetType,
    UserReport,
)
from spotterhub.modules.forum.permissions import CapabilitySet, resolve_capabilities
from spotterhub.modules.forum.service import ForumService
from spotterhub.modules.moderation.audit import ModerationLog
from spotterhub.modules.moderation.reports import ReportQueue


class ModerationService:
    """
    Service for moderator actions on forum content.

    Every action re-checks the actor's capabilities, resolved from
    the current request's identity. A successful action appends
    exactly one entry to the moderation log in the same session; a
    failed one raises before anything is written.

    Usage:
        moderation = ModerationService(db_session)
        post = await moderation.toggle_pin(post_id, actor, pinned=True)
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize moderation service with database session."""
        self.db = db
        self.forum = ForumService(db)
        self.log = ModerationLog(db)
        self.reports = ReportQueue(db)

    def _capabilities(self, actor: Identity) -> CapabilitySet:
        return resolve_capabilities(actor)

    def _deny(self, actor: Identity, action: str, target: str) -> PermissionDenied:
        logger.warning(f"User {actor.id or 'anonymous'} denied {action} on {target}")
        return PermissionDenied(f"You do not have permission to {action}")

    async def _record(
        self,
        actor: Identity,
        action_type: ActionType,
        target_type: TargetType,
        target_id: str,
        reason: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> ModerationAction:
        return await self.log.append(
            actor_id=actor.id,
            actor_name=actor.name,
            action_type=action_type,
            target_type=target_type,
            target_id=target_id,
            reason=reason,
            details=details,
        )

    # ==================== Pin / Lock ====================

    async def toggle_pin(
        self,
        post_id: str,
        actor: Identity,
        pinned: bool,
        reason: str | None = None,
    ) -> ForumPost:
        """
        Pin or unpin a post.

        Args:
            post_id: Post ID
            actor: Acting moderator
            pinned: New pinned state
            reason: Optional justification

        Returns:
            Updated post
        """
        if not self._capabilities(actor).can_pin:
            raise self._deny(actor, "pin posts", f"post {post_id}")

        post = await self.forum.require_post(post_id)
        post.is_pinned = pinned
        await self.db.flush()

        await self._record(
            actor,
            ActionType.PIN if pinned else ActionType.UNPIN,
            TargetType.POST,
            post_id,
            reason,
        )
        return post

    async def toggle_lock(
        self,
        post_id: str,
        actor: Identity,
        locked: bool,
        reason: str | None = None,
    ) -> ForumPost:
        """
        Lock or unlock a post.

        A locked post rejects new comments until unlocked.

        Args:
            post_id: Post ID
            actor: Acting moderator
            locked: New locked state
            reason: Optional justification

        Returns:
            Updated post
        """
        if not self._capabilities(actor).can_lock:
            raise self._deny(actor, "lock posts", f"post {post_id}")

        post = await self.forum.require_post(post_id)
        post.is_locked = locked
        await self.db.flush()

        await self._record(
            actor,
            ActionType.LOCK if locked else ActionType.UNLOCK,
            TargetType.POST,
            post_id,
            reason,
        )
        return post

    # ==================== Delete ====================

    async def delete_post(
        self,
        post_id: str,
        actor: Identity,
        reason: str,
    ) -> ModerationAction:
        """
        Soft-delete a post.

        Allowed for the post's author or an actor with ``can_delete``.
        A reason is always required.

        Returns:
            The log entry recording the deletion
        """
        post = await self.forum.require_post(post_id)

        is_owner = actor.is_authenticated and post.author_id == actor.id
        if not is_owner and not self._capabilities(actor).can_delete:
            raise self._deny(actor, "delete posts", f"post {post_id}")

        reason = (reason or "").strip()
        if not reason:
            raise ValidationFailed("A reason is required to delete a post")

        # Conditional update: a concurrent delete that got there first wins
        if not await self.forum.soft_delete_post(post_id):
            raise NotFound(f"Post {post_id} not found")

        return await self._record(
            actor,
            ActionType.DELETE,
            TargetType.POST,
            post_id,
            reason,
            details={"by_author": is_owner},
        )

    async def delete_comment(
        self,
        comment_id: str,
        actor: Identity,
        reason: str,
    ) -> ModerationAction:
        """
        Soft-delete a comment.

        Allowed for the comment's author or an actor with ``can_delete``.
        The parent post's comment count drops by one because the count
        is derived from non-deleted rows. A second delete of the same
        comment is a NotFound.

        Returns:
            The log entry recording the deletion
        """
        comment: ForumComment = await self.forum.require_comment(comment_id)

        is_owner = actor.is_authenticated and comment.author_id == actor.id
        if not is_owner and not self._capabilities(actor).can_delete:
            raise self._deny(actor, "delete comments", f"comment {comment_id}")

        reason = (reason or "").strip()
        if not reason:
            raise ValidationFailed("A reason is required to delete a comment")

        if not await self.forum.soft_delete_comment(comment_id):
            raise NotFound(f"Comment {comment_id} not found")

        return await self._record(
            actor,
            ActionType.DELETE,
            TargetType.COMMENT,
            comment_id,
            reason,
            details={"post_id": comment.post_id, "by_author": is_owner},
        )

    # ==================== Edit / Move ====================

    async def edit_post(
        self,
        post_id: str,
        actor: Identity,
        title: str | None = None,
        content: str | None = None,
        tags: list[str] | None = None,
        reason: str | None = None,
    ) -> ForumPost:
        """
        Edit a post's title, content, or tags.

        Authors edit their own posts freely; anyone else needs
        ``can_edit_any_post`` and the edit is logged.

        Returns:
            Updated post
        """
        post = await self.forum.require_post(post_id)

        is_owner = actor.is_authenticated and post.author_id == actor.id
        if not is_owner and not self._capabilities(actor).can_edit_any_post:
            raise self._deny(actor, "edit posts", f"post {post_id}")

        changes = await self.forum.update_post_fields(
            post, title=title, content=content, tags=tags
        )

        if changes and not is_owner:
            await self._record(
                actor,
                ActionType.EDIT,
                TargetType.POST,
                post_id,
                reason,
                details={"fields": sorted(changes)},
            )
        return post

    async def move_post(
        self,
        post_id: str,
        actor: Identity,
        category_id: str,
        reason: str | None = None,
    ) -> ForumPost:
        """
        Move a post to a different category.

        Returns:
            Updated post
        """
        if not self._capabilities(actor).can_moderate:
            raise self._deny(actor, "move posts", f"post {post_id}")

        post = await self.forum.require_post(post_id)
        category = await self.forum.get_category(category_id)
        if not category:
            raise NotFound(f"Category {category_id} not found")

        previous = post.category_id
        post.category_id = category.id
        post.category = category
        await self.db.flush()

        await self._record(
            actor,
            ActionType.MOVE,
            TargetType.POST,
            post_id,
            reason,
            details={"from_category_id": previous, "to_category_id": category.id},
        )
        return post

    # ==================== History / Stats ====================

    async def get_history(
        self,
        actor: Identity,
        limit: int = 50,
        offset: int = 0,
        target_type: TargetType | None = None,
        target_id: str | None = None,
    ) -> list[ModerationAction]:
        """Get the moderation log, newest first."""
        if not self._capabilities(actor).can_moderate:
            raise self._deny(actor, "view moderation history", "log")

        return await self.log.list_recent(
            limit=limit,
            offset=offset,
            target_type=target_type,
            target_id=target_id,
        )

    async def get_pending_reports(
        self,
        actor: Identity,
        limit: int = 50,
        offset: int = 0,
    ) -> list[UserReport]:
        """Get the pending report queue."""
        if not self._capabilities(actor).can_moderate:
            raise self._deny(actor, "view reports", "report queue")
        return await self.reports.list_pending(limit=limit, offset=offset)

    async def get_stats(self, actor: Identity) -> dict[str, int]:
        """
        Aggregate moderation counters, computed on demand.

        ``actions_today`` counts log entries since midnight of the
        current day on the server clock (UTC).
        """
        if not self._capabilities(actor).can_moderate:
            raise self._deny(actor, "view moderation stats", "stats")

        today = datetime.utcnow().replace(hour=0, minute=0, second=0, microsecond=0)

        return {
            "pending_count": await self.reports.count_pending(),
            "actions_today": await self.log.count_since(today),
            "total_posts": await self.forum.count_posts(),
            "total_comments": await self.forum.count_comments(),
        }
