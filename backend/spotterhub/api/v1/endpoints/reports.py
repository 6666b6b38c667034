"""
Report API Endpoints.

User reports against posts, comments, and users, and their
review by moderators.
"""

from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from spotterhub.core.config import settings
from spotterhub.core.database import get_db
from spotterhub.core.security import Identity, get_identity
from spotterhub.models.moderation import ReportStatus, ReportTargetType, UserReport
from spotterhub.modules.moderation.reports import ReportQueue
from spotterhub.modules.moderation.service import ModerationService

router = APIRouter()


# ==================== Schemas ====================


class SubmitReportRequest(BaseModel):
    """Report a post, comment, or user."""

    target_type: ReportTargetType
    target_id: str = Field(..., min_length=1)
    reason: str = Field(..., min_length=1, max_length=100)
    description: str = ""


class ResolveReportRequest(BaseModel):
    """Close a pending report."""

    status: ReportStatus
    resolution_note: str = ""


def report_detail(report: UserReport) -> dict[str, Any]:
    return {
        "id": report.id,
        "reporter_id": report.reporter_id,
        "reporter_name": report.reporter_name,
        "target_type": report.target_type.value,
        "target_id": report.target_id,
        "reason": report.reason,
        "description": report.description,
        "status": report.status.value,
        "resolution": report.resolution,
        "reviewed_by": report.reviewed_by,
        "reviewed_at": report.reviewed_at.isoformat() if report.reviewed_at else None,
        "created_at": report.created_at.isoformat(),
    }


# ==================== Reports ====================


@router.post("", status_code=201)
async def submit_report(
    request: SubmitReportRequest,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Submit a report."""
    queue = ReportQueue(db)
    report = await queue.submit(
        identity,
        request.target_type,
        request.target_id,
        request.reason,
        request.description,
    )

    return report_detail(report)


@router.get("")
async def get_pending_reports(
    limit: int = Query(settings.forum_pending_reports_limit, ge=1, le=200),
    offset: int = Query(0, ge=0),
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Get pending reports (moderators only)."""
    moderation = ModerationService(db)
    reports = await moderation.get_pending_reports(identity, limit=limit, offset=offset)

    return {
        "items": [report_detail(r) for r in reports],
        "limit": limit,
        "offset": offset,
    }


@router.post("/{report_id}/resolve")
async def resolve_report(
    report_id: int,
    request: ResolveReportRequest,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Resolve or dismiss a pending report."""
    queue = ReportQueue(db)
    report = await queue.resolve(
        report_id,
        identity,
        request.status,
        request.resolution_note,
    )

    return report_detail(report)
