import pytest
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, patch
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from server.web.app.services.reporting_service import ReportingService, reportable_type_for
from server.web.app.models import Report, ContentType, ReportStatus

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0)


def test_reportable_type_mapping():
    assert reportable_type_for(ContentType.article) == "Article"
    assert reportable_type_for(ContentType.topic) == "Topic"
    assert reportable_type_for(ContentType.reply) == "Reply"
    assert reportable_type_for(ContentType.job) == "Job"


@pytest.mark.asyncio
async def test_get_report_counts_only_counts_open_reports(db_session: AsyncSession, content, add_report):
    """
    Resolved and dismissed reports do not count.
    """
    # Arrange
    await add_report("Topic", "t1")
    await add_report("Topic", "t1", status="reviewing")
    await add_report("Topic", "t1", status="resolved_violation")
    await add_report("Topic", "t1", status="dismissed")
    await add_report("Article", "t1")
    reporting_service = ReportingService(db_session)

    # Act
    counts = await reporting_service.get_report_counts(ContentType.topic, ["t1", "t2"])

    # Assert
    assert counts == {"t1": 2}
    assert await reporting_service.get_report_counts(ContentType.topic, []) == {}


@pytest.mark.asyncio
async def test_get_open_report_groups(db_session: AsyncSession, content, add_report):
    # Arrange
    await add_report("Article", "a1", reason="spam", created_at=BASE_TIME)
    await add_report("Article", "a1", reason="abuse", created_at=BASE_TIME + timedelta(hours=2))
    await add_report("Job", "j1", reason="spam", created_at=BASE_TIME + timedelta(hours=1))
    await add_report("Job", "j1", status="resolved_no_action")
    reporting_service = ReportingService(db_session)

    # Act
    groups = await reporting_service.get_open_report_groups()
    jobs_only = await reporting_service.get_open_report_groups(content_type=ContentType.job)
    spam_only = await reporting_service.get_open_report_groups(reason="spam")

    # Assert
    assert [(g.content_type, g.content_id, g.count) for g in groups] == [
        (ContentType.article, "a1", 2),
        (ContentType.job, "j1", 1),
    ]
    assert groups[0].reports[0].reason == "abuse"
    assert [(g.content_id, g.count) for g in jobs_only] == [("j1", 1)]
    assert [(g.content_id, g.count) for g in spam_only] == [("j1", 1), ("a1", 1)]


@pytest.mark.asyncio
async def test_resolve_content_reports(db_session: AsyncSession, content, add_report, users):
    # Arrange
    await add_report("Reply", "r1")
    await add_report("Reply", "r1", status="reviewing")
    await add_report("Reply", "r1", status="dismissed")
    await add_report("Topic", "t1")
    reporting_service = ReportingService(db_session)

    # Act
    outcome = await reporting_service.resolve_content_reports(
        ContentType.reply, "r1", ReportStatus.resolved_violation, users["admin"].id
    )

    # Assert
    assert outcome.ok is True
    result = await db_session.execute(
        select(Report.reportable_type, Report.status, Report.resolved_by).order_by(Report.status)
    )
    rows = sorted(tuple(row) for row in result.all())
    assert rows == [
        ("Reply", "dismissed", None),
        ("Reply", "resolved_violation", "admin-1"),
        ("Reply", "resolved_violation", "admin-1"),
        ("Topic", "pending", None),
    ]


@pytest.mark.asyncio
async def test_resolve_content_reports_failure_is_reported(db_session: AsyncSession):
    reporting_service = ReportingService(db_session)

    with patch.object(db_session, "execute", AsyncMock(side_effect=RuntimeError("db down"))):
        outcome = await reporting_service.resolve_content_reports(
            ContentType.article, "a1", ReportStatus.resolved_no_action, "admin-1"
        )

    assert outcome.ok is False
    assert outcome.error == "db down"
