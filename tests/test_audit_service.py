import pytest
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, patch
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from server.web.app.models import ModerationLog, ContentType
from server.web.app.services.audit_service import (
    Actor,
    AuditAction,
    ModerationAuditLogger,
    SYSTEM_ACTOR_ID,
)


def test_actor_storage_id():
    assert Actor("mod-1").storage_id == "mod-1"
    assert Actor.system().is_system is True
    assert Actor.system().storage_id == SYSTEM_ACTOR_ID == "system"


@pytest.mark.asyncio
async def test_record_writes_entry(db_session: AsyncSession):
    audit = ModerationAuditLogger(db_session)

    outcome = await audit.record(
        Actor.system(),
        AuditAction.AUTO_FLAG,
        ContentType.topic,
        "t1",
        reason="Spam detected",
        metadata={"spamScore": 80},
    )

    assert outcome.ok is True
    entry = (await db_session.execute(select(ModerationLog))).scalar_one()
    assert entry.moderator_id == "system"
    assert entry.action == "auto_flag_spam"
    assert entry.target_type == "topic"
    assert entry.meta_data == {"spamScore": 80}


@pytest.mark.asyncio
async def test_record_failure_is_reported_not_raised(db_session: AsyncSession):
    audit = ModerationAuditLogger(db_session)

    with patch.object(db_session, "commit", AsyncMock(side_effect=RuntimeError("disk full"))):
        outcome = await audit.record(Actor("mod-1"), AuditAction.APPROVE, ContentType.article, "a1")

    assert outcome.ok is False
    assert outcome.error == "disk full"


@pytest.mark.asyncio
async def test_list_logs_filters_and_paginates(db_session: AsyncSession):
    start = datetime(2024, 1, 1)
    db_session.add_all([
        ModerationLog(moderator_id="mod-1", action="approve_content", target_type="article",
                      target_id="a1", created_at=start),
        ModerationLog(moderator_id="mod-1", action="reject_content", target_type="topic",
                      target_id="t1", created_at=start + timedelta(days=1)),
        ModerationLog(moderator_id="admin-1", action="hard_delete_content", target_type="article",
                      target_id="a2", created_at=start + timedelta(days=2)),
    ])
    await db_session.commit()
    audit = ModerationAuditLogger(db_session)

    everything, total = await audit.list_logs()
    by_moderator, mod_total = await audit.list_logs(moderator_id="mod-1")
    articles, _ = await audit.list_logs(target_type=ContentType.article)
    rejected, _ = await audit.list_logs(action="reject_content")
    in_range, _ = await audit.list_logs(start_date=start + timedelta(hours=1), end_date=start + timedelta(days=1))
    page_two, paged_total = await audit.list_logs(page=2, limit=2)

    assert total == 3
    assert [e.target_id for e in everything] == ["a2", "t1", "a1"]
    assert mod_total == 2
    assert [e.target_id for e in by_moderator] == ["t1", "a1"]
    assert [e.target_id for e in articles] == ["a2", "a1"]
    assert [e.target_id for e in rejected] == ["t1"]
    assert [e.target_id for e in in_range] == ["t1"]
    assert paged_total == 3
    assert [e.target_id for e in page_two] == ["a1"]
