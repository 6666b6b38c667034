"""
Moderation models.

Includes:
- Moderation actions (append-only audit log)
- User reports (review queue)
"""

from datetime import datetime
from enum import Enum as PyEnum
from typing import Any

from sqlalchemy import JSON, DateTime, Enum, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from spotterhub.core.database import Base


class ActionType(str, PyEnum):
    """Kinds of moderation action."""

    PIN = "pin"
    UNPIN = "unpin"
    LOCK = "lock"
    UNLOCK = "unlock"
    DELETE = "delete"
    EDIT = "edit"
    MOVE = "move"


class TargetType(str, PyEnum):
    """Content a moderation action applies to."""

    POST = "post"
    COMMENT = "comment"


class ReportTargetType(str, PyEnum):
    """What a user report points at."""

    POST = "post"
    COMMENT = "comment"
    USER = "user"


class ReportStatus(str, PyEnum):
    """Report review status. Resolved and dismissed are terminal."""

    PENDING = "pending"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


class ModerationAction(Base):
    """
    Audit log entry for one moderation action.

    Rows are never updated or deleted. ``target_id`` may refer to
    content that has since been soft-deleted.
    """

    __tablename__ = "moderation_actions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    actor_id: Mapped[str] = mapped_column(String(128), index=True)
    actor_name: Mapped[str] = mapped_column(String(100))

    action_type: Mapped[ActionType] = mapped_column(Enum(ActionType))
    target_type: Mapped[TargetType] = mapped_column(Enum(TargetType))
    target_id: Mapped[str] = mapped_column(String(36), index=True)

    reason: Mapped[str | None] = mapped_column(Text)
    details: Mapped[dict[str, Any] | None] = mapped_column(JSON)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, index=True
    )

    def __repr__(self) -> str:
        return f"<ModerationAction {self.action_type.value} {self.target_type.value}:{self.target_id}>"


class UserReport(Base):
    """User-submitted report awaiting moderator review."""

    __tablename__ = "user_reports"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    reporter_id: Mapped[str] = mapped_column(String(128), index=True)
    reporter_name: Mapped[str] = mapped_column(String(100))

    target_type: Mapped[ReportTargetType] = mapped_column(Enum(ReportTargetType))
    target_id: Mapped[str] = mapped_column(String(128), index=True)

    reason: Mapped[str] = mapped_column(String(100))
    description: Mapped[str] = mapped_column(Text, default="")

    status: Mapped[ReportStatus] = mapped_column(
        Enum(ReportStatus),
        default=ReportStatus.PENDING,
        index=True,
    )
    resolution: Mapped[str | None] = mapped_column(Text)
    reviewed_by: Mapped[str | None] = mapped_column(String(128))
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    def __repr__(self) -> str:
        return f"<UserReport {self.id} {self.status.value}>"
