"""
Moderation API Endpoints.

Capability lookup, pin/lock/delete/move actions, and the
moderation log.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from spotterhub.api.v1.endpoints.forum import post_summary
from spotterhub.core.config import settings
from spotterhub.core.database import get_db
from spotterhub.core.security import Identity, get_identity, get_identity_or_anonymous
from spotterhub.models.moderation import ModerationAction, TargetType
from spotterhub.modules.forum.permissions import resolve_capabilities
from spotterhub.modules.moderation.service import ModerationService

router = APIRouter()


# ==================== Schemas ====================


class PinRequest(BaseModel):
    """Pin or unpin a post."""

    pinned: bool
    reason: str | None = None


class LockRequest(BaseModel):
    """Lock or unlock a post."""

    locked: bool
    reason: str | None = None


class DeleteRequest(BaseModel):
    """Delete content; a reason is mandatory."""

    reason: str = ""


class MoveRequest(BaseModel):
    """Move a post to another category."""

    category_id: str
    reason: str | None = None


def action_detail(action: ModerationAction) -> dict[str, Any]:
    return {
        "id": action.id,
        "actor_id": action.actor_id,
        "actor_name": action.actor_name,
        "action_type": action.action_type.value,
        "target_type": action.target_type.value,
        "target_id": action.target_id,
        "reason": action.reason,
        "details": action.details,
        "created_at": action.created_at.isoformat(),
    }


# ==================== Permissions ====================


@router.get("/permissions")
async def get_permissions(
    identity: Identity = Depends(get_identity_or_anonymous),
) -> dict[str, Any]:
    """Get the caller's capability set."""
    return resolve_capabilities(identity).to_dict()


# ==================== Post actions ====================


@router.post("/posts/{post_id}/pin")
async def pin_post(
    post_id: str,
    request: PinRequest,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Pin or unpin a post."""
    moderation = ModerationService(db)
    post = await moderation.toggle_pin(post_id, identity, request.pinned, request.reason)

    return post_summary(post, await moderation.forum.count_comments(post_id))


@router.post("/posts/{post_id}/lock")
async def lock_post(
    post_id: str,
    request: LockRequest,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Lock or unlock a post."""
    moderation = ModerationService(db)
    post = await moderation.toggle_lock(post_id, identity, request.locked, request.reason)

    return post_summary(post, await moderation.forum.count_comments(post_id))


@router.post("/posts/{post_id}/move")
async def move_post(
    post_id: str,
    request: MoveRequest,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Move a post to another category."""
    moderation = ModerationService(db)
    post = await moderation.move_post(
        post_id, identity, request.category_id, request.reason
    )

    return post_summary(post, await moderation.forum.count_comments(post_id))


@router.delete("/posts/{post_id}")
async def delete_post(
    post_id: str,
    request: DeleteRequest | None = Body(None),
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Soft-delete a post (author or moderator)."""
    moderation = ModerationService(db)
    action = await moderation.delete_post(
        post_id, identity, request.reason if request else ""
    )

    return {"deleted": True, "post_id": post_id, "action_id": action.id}


@router.delete("/comments/{comment_id}")
async def delete_comment(
    comment_id: str,
    request: DeleteRequest | None = Body(None),
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Soft-delete a comment (author or moderator)."""
    moderation = ModerationService(db)
    action = await moderation.delete_comment(
        comment_id, identity, request.reason if request else ""
    )

    return {"deleted": True, "comment_id": comment_id, "action_id": action.id}


# ==================== Log / Stats ====================


@router.get("/moderation/history")
async def get_history(
    limit: int = Query(settings.moderation_history_limit, ge=1, le=200),
    offset: int = Query(0, ge=0),
    target_type: TargetType | None = Query(None),
    target_id: str | None = Query(None),
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Get moderation actions, newest first."""
    moderation = ModerationService(db)
    actions = await moderation.get_history(
        identity,
        limit=limit,
        offset=offset,
        target_type=target_type,
        target_id=target_id,
    )

    return {
        "items": [action_detail(a) for a in actions],
        "limit": limit,
        "offset": offset,
    }


@router.get("/moderation/stats")
async def get_stats(
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
) -> dict[str, int]:
    """Get moderation counters."""
    moderation = ModerationService(db)
    return await moderation.get_stats(identity)
