"""
Report Queue - user reports awaiting moderator review.
"""

from datetime import datetime

from loguru import logger
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from spotterhub.core.exceptions import (
    AuthenticationRequired,
    NotFound,
    PermissionDenied,
    StateConflict,
    ValidationFailed,
)
from spotterhub.core.security import Identity
from spotterhub.models.moderation import ReportStatus, ReportTargetType, UserReport
from spotterhub.modules.forum.permissions import resolve_capabilities

TERMINAL_STATUSES = (ReportStatus.RESOLVED, ReportStatus.DISMISSED)


class ReportQueue:
    """
    Queue of user reports against posts, comments, and users.

    A report starts ``pending`` and moves exactly once to
    ``resolved`` or ``dismissed``. Resolving a report never touches
    the reported content; moderators act on it separately.

    Usage:
        queue = ReportQueue(db_session)
        report = await queue.submit(user, ReportTargetType.POST, post_id, "spam", "")
        await queue.resolve(report.id, moderator, ReportStatus.DISMISSED, "not spam")
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize report queue with database session."""
        self.db = db

    async def submit(
        self,
        reporter: Identity,
        target_type: ReportTargetType,
        target_id: str,
        reason: str,
        description: str = "",
    ) -> UserReport:
        """
        File a report.

        Reports are not deduplicated: the same target may be
        reported any number of times.

        Args:
            reporter: Authenticated reporting user
            target_type: Post, comment or user
            target_id: Id of the reported target
            reason: Short reason (e.g. "spam")
            description: Free-text details

        Returns:
            Created report in ``pending`` status
        """
        if not reporter.is_authenticated:
            raise AuthenticationRequired("You must be logged in to submit reports")

        report = UserReport(
            reporter_id=reporter.id,
            reporter_name=reporter.name,
            target_type=target_type,
            target_id=target_id,
            reason=reason,
            description=description,
            status=ReportStatus.PENDING,
        )
        self.db.add(report)
        await self.db.flush()

        logger.info(
            f"Report {report.id} filed by {reporter.id} against "
            f"{target_type.value} {target_id}: {reason}"
        )
        return report

    async def get_report(self, report_id: int) -> UserReport | None:
        """Get report by ID."""
        query = select(UserReport).where(UserReport.id == report_id)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def resolve(
        self,
        report_id: int,
        actor: Identity,
        status: ReportStatus,
        resolution_note: str = "",
    ) -> UserReport:
        """
        Close a pending report.

        Args:
            report_id: Report ID
            actor: Moderator closing the report
            status: ``resolved`` or ``dismissed``
            resolution_note: Explanation recorded on the report

        Returns:
            Updated report

        Raises:
            PermissionDenied: actor cannot moderate
            ValidationFailed: status is not terminal
            NotFound: no such report
            StateConflict: report already closed
        """
        if not resolve_capabilities(actor).can_moderate:
            logger.warning(f"User {actor.id} denied resolving report {report_id}")
            raise PermissionDenied("You do not have permission to resolve reports")

        if status not in TERMINAL_STATUSES:
            raise ValidationFailed("Status must be 'resolved' or 'dismissed'")

        now = datetime.utcnow()
        result = await self.db.execute(
            update(UserReport)
            .where(
                UserReport.id == report_id,
                UserReport.status == ReportStatus.PENDING,
            )
            .values(
                status=status,
                resolution=resolution_note or None,
                reviewed_by=actor.id,
                reviewed_at=now,
                updated_at=now,
            )
        )

        report = await self.get_report(report_id)
        if report is None:
            raise NotFound(f"Report {report_id} not found")
        if result.rowcount != 1:
            raise StateConflict(
                f"Report {report_id} is already {report.status.value}"
            )

        await self.db.refresh(report)
        logger.info(f"Report {report_id} {status.value} by {actor.name} ({actor.id})")
        return report

    async def list_pending(self, limit: int = 50, offset: int = 0) -> list[UserReport]:
        """Get pending reports, newest first."""
        query = (
            select(UserReport)
            .where(UserReport.status == ReportStatus.PENDING)
            .order_by(UserReport.created_at.desc(), UserReport.id.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def count_pending(self) -> int:
        """Count pending reports."""
        result = await self.db.execute(
            select(func.count(UserReport.id)).where(
                UserReport.status == ReportStatus.PENDING
            )
        )
        return result.scalar_one()
