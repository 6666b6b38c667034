"""Tests for the report queue."""

import pytest

from spotterhub.core.exceptions import (
    AuthenticationRequired,
    NotFound,
    PermissionDenied,
    StateConflict,
    ValidationFailed,
)
from spotterhub.models.moderation import ReportStatus, ReportTargetType
from spotterhub.modules.moderation.reports import ReportQueue


async def test_submit_creates_pending_report(db, member):
    queue = ReportQueue(db)

    report = await queue.submit(
        member, ReportTargetType.COMMENT, "C77", "spam", "Link farm"
    )

    assert report.status == ReportStatus.PENDING
    assert report.reporter_id == "U"
    assert report.reporter_name == "Uma User"
    assert report.resolution is None
    assert [r.id for r in await queue.list_pending()] == [report.id]


async def test_submit_requires_identity(db, anonymous):
    with pytest.raises(AuthenticationRequired):
        await ReportQueue(db).submit(anonymous, ReportTargetType.POST, "P1", "spam")


async def test_duplicate_reports_are_kept(db, member, author):
    queue = ReportQueue(db)

    await queue.submit(member, ReportTargetType.USER, "troll", "harassment")
    await queue.submit(member, ReportTargetType.USER, "troll", "harassment")
    await queue.submit(author, ReportTargetType.USER, "troll", "harassment")

    assert await queue.count_pending() == 3


async def test_resolve_exactly_once(db, member, moderator):
    queue = ReportQueue(db)
    report = await queue.submit(member, ReportTargetType.COMMENT, "C77", "spam")

    dismissed = await queue.resolve(
        report.id, moderator, ReportStatus.DISMISSED, "Not spam, just enthusiastic"
    )
    assert dismissed.status == ReportStatus.DISMISSED
    assert dismissed.resolution == "Not spam, just enthusiastic"
    assert dismissed.reviewed_by == "M"
    assert dismissed.reviewed_at is not None
    assert await queue.list_pending() == []

    with pytest.raises(StateConflict):
        await queue.resolve(report.id, moderator, ReportStatus.RESOLVED, "changed mind")

    again = await queue.get_report(report.id)
    assert again.status == ReportStatus.DISMISSED
    assert again.resolution == "Not spam, just enthusiastic"


async def test_resolve_requires_moderator(db, member, author):
    queue = ReportQueue(db)
    report = await queue.submit(member, ReportTargetType.POST, "P1", "spam")

    with pytest.raises(PermissionDenied):
        await queue.resolve(report.id, author, ReportStatus.RESOLVED, "")

    assert (await queue.get_report(report.id)).status == ReportStatus.PENDING


async def test_resolve_back_to_pending_is_invalid(db, member, moderator):
    queue = ReportQueue(db)
    report = await queue.submit(member, ReportTargetType.POST, "P1", "spam")

    with pytest.raises(ValidationFailed):
        await queue.resolve(report.id, moderator, ReportStatus.PENDING, "")


async def test_resolve_unknown_report(db, moderator):
    with pytest.raises(NotFound):
        await ReportQueue(db).resolve(999, moderator, ReportStatus.RESOLVED, "")


async def test_pending_list_newest_first(db, member):
    queue = ReportQueue(db)
    first = await queue.submit(member, ReportTargetType.POST, "P1", "spam")
    second = await queue.submit(member, ReportTargetType.POST, "P2", "off-topic")

    assert [r.id for r in await queue.list_pending()] == [second.id, first.id]
    assert [r.id for r in await queue.list_pending(limit=1, offset=1)] == [first.id]
