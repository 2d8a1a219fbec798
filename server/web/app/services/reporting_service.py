import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import func, update

from server.web.app.models import Report, ContentType, ReportStatus, OPEN_REPORT_STATUSES
from server.web.app.services.audit_service import SideEffectOutcome

logger = logging.getLogger(__name__)

REPORTABLE_TYPES = {
    ContentType.article: "Article",
    ContentType.topic: "Topic",
    ContentType.reply: "Reply",
    ContentType.job: "Job",
}
CONTENT_TYPES = {v: k for k, v in REPORTABLE_TYPES.items()}


def reportable_type_for(content_type: ContentType) -> str:
    return REPORTABLE_TYPES[ContentType(content_type)]


@dataclass
class ReportGroup:
    """Open reports against one piece of content, newest first."""
    content_type: ContentType
    content_id: str
    reports: List[Report] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.reports)


class ReportingService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_report_counts(self, content_type: ContentType, ids: Iterable[str]) -> Dict[str, int]:
        ids = list(ids)
        if not ids:
            return {}

        result = await self.db.execute(
            select(Report.reportable_id, func.count(Report.id))
            .where(
                Report.reportable_type == reportable_type_for(content_type),
                Report.reportable_id.in_(ids),
                Report.status.in_(OPEN_REPORT_STATUSES),
            )
            .group_by(Report.reportable_id)
        )
        return dict(result.all())

    async def get_open_report_groups(
        self,
        content_type: Optional[ContentType] = None,
        reason: Optional[str] = None,
    ) -> List[ReportGroup]:
        query = (
            select(Report)
            .where(Report.status.in_(OPEN_REPORT_STATUSES))
            .order_by(Report.created_at.desc())
        )
        if content_type:
            query = query.where(Report.reportable_type == reportable_type_for(content_type))
        if reason:
            query = query.where(Report.reason == reason)

        result = await self.db.execute(query)

        groups: Dict[tuple, ReportGroup] = {}
        for report in result.scalars().all():
            key = (report.reportable_type, report.reportable_id)
            if key not in groups:
                content = CONTENT_TYPES.get(report.reportable_type)
                if content is None:
                    logger.warning(f"Skipping report {report.id} with unknown type {report.reportable_type}")
                    continue
                groups[key] = ReportGroup(content_type=content, content_id=report.reportable_id)
            groups[key].reports.append(report)
        return list(groups.values())

    async def resolve_content_reports(
        self,
        content_type: ContentType,
        content_id: str,
        resolution: ReportStatus,
        resolved_by: str,
    ) -> SideEffectOutcome:
        """Close every open report on the content. Failures are reported, not raised."""
        content_type = ContentType(content_type)
        resolution = ReportStatus(resolution)
        try:
            result = await self.db.execute(
                update(Report)
                .where(
                    Report.reportable_type == reportable_type_for(content_type),
                    Report.reportable_id == content_id,
                    Report.status.in_(OPEN_REPORT_STATUSES),
                )
                .values(
                    status=resolution.value,
                    resolved_at=datetime.utcnow(),
                    resolved_by=resolved_by,
                )
            )
            await self.db.commit()
            if result.rowcount:
                logger.info(f"Resolved {result.rowcount} reports on {content_type.value} {content_id} as {resolution.value}")
            return SideEffectOutcome(ok=True)
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Error resolving reports for {content_type.value} {content_id}: {e}")
            return SideEffectOutcome(ok=False, error=str(e))
