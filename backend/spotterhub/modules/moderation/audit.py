"""
Moderation Action Log - append-only audit trail.
"""

from datetime import datetime
from typing import Any

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from spotterhub.models.moderation import ActionType, ModerationAction, TargetType


class ModerationLog:
    """
    Append-only log of moderation actions.

    Entries are written in the caller's session, so they commit or
    roll back together with the content change they describe.

    Usage:
        log = ModerationLog(db_session)
        await log.append("u1", "Alice", ActionType.PIN, TargetType.POST, post_id)
        recent = await log.list_recent(limit=10)
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize moderation log with database session."""
        self.db = db

    async def append(
        self,
        actor_id: str,
        actor_name: str,
        action_type: ActionType,
        target_type: TargetType,
        target_id: str,
        reason: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> ModerationAction:
        """
        Record a moderation action.

        Args:
            actor_id: Identity of the moderator (or owning author)
            actor_name: Display name at the time of the action
            action_type: What was done
            target_type: Post or comment
            target_id: Id of the affected content
            reason: Free-text justification
            details: Structured extras (edited fields, move target)

        Returns:
            Created log entry
        """
        action = ModerationAction(
            actor_id=actor_id,
            actor_name=actor_name,
            action_type=action_type,
            target_type=target_type,
            target_id=target_id,
            reason=reason or None,
            details=details,
        )
        self.db.add(action)
        await self.db.flush()

        logger.info(
            f"Moderation: {actor_name} ({actor_id}) {action_type.value} "
            f"{target_type.value} {target_id}"
        )
        return action

    async def list_recent(
        self,
        limit: int = 50,
        offset: int = 0,
        target_type: TargetType | None = None,
        target_id: str | None = None,
    ) -> list[ModerationAction]:
        """
        Get log entries, newest first.

        Args:
            limit: Max results
            offset: Pagination offset
            target_type: Only entries about posts or comments
            target_id: Only entries about this target

        Returns:
            List of moderation actions
        """
        query = select(ModerationAction)

        if target_type:
            query = query.where(ModerationAction.target_type == target_type)
        if target_id:
            query = query.where(ModerationAction.target_id == target_id)

        query = (
            query.order_by(ModerationAction.created_at.desc(), ModerationAction.id.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def count_since(self, since: datetime) -> int:
        """Count entries recorded at or after ``since``."""
        query = select(func.count(ModerationAction.id)).where(
            ModerationAction.created_at >= since
        )
        result = await self.db.execute(query)
        return result.scalar_one()
