"""
Content Moderation Service

Unified moderation over articles, forum topics, forum replies and job
listings: listing, role-gated state transitions with an audit trail, bulk
actions with per-item failure reporting, and automatic spam flagging.
"""
import asyncio
import logging
import math
from typing import Callable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from shared_lib.config import SystemConfig, get_config
from ..middleware.permissions import (
    verify_moderation_permission,
    verify_hard_delete_permission,
)
from ..models import ContentType, ContentStatus, ReportStatus
from ..schemas import (
    ModerationUser,
    ContentItem,
    Pagination,
    PaginatedContent,
    PaginatedModerationLogs,
    ModerationLogOut,
    ModerationActionResult,
    ApproveContentInput,
    RejectContentInput,
    HideContentInput,
    DeleteContentInput,
    BulkAction,
    BulkActionRequest,
    BulkActionResult,
    ListContentQuery,
    ListReportedContentQuery,
    ModerationLogQuery,
)
from .audit_service import Actor, AuditAction, ModerationAuditLogger
from .content_adapters import ContentNotFoundError, get_adapter
from .logging_service import get_moderation_logger
from .notification_service import AuthorNotifier
from .reporting_service import ReportingService
from .spam_detection_service import SpamDetectionService

logger = logging.getLogger(__name__)
events = get_moderation_logger()


class ModerationOperationError(Exception):
    """An unexpected failure, reported to callers with a generic message."""
    pass


class ModerationValidationError(Exception):
    pass


def _sort_key(sort_by: str):
    if sort_by in ("spam_score", "report_count"):
        return lambda item: getattr(item, sort_by) or 0
    return lambda item: getattr(item, sort_by)


def sort_content(items: List[ContentItem], sort_by: str, sort_order: str) -> List[ContentItem]:
    """Stable sort; equal keys keep their fetch order."""
    return sorted(items, key=_sort_key(sort_by), reverse=(sort_order == "desc"))


def build_pagination(total: int, page: int, limit: int) -> Pagination:
    return Pagination(
        page=page,
        limit=limit,
        total=total,
        total_pages=math.ceil(total / limit) if limit else 0,
    )


def paginate(items: List[ContentItem], page: int, limit: int) -> PaginatedContent:
    start = (page - 1) * limit
    return PaginatedContent(
        items=items[start:start + limit],
        pagination=build_pagination(len(items), page, limit),
    )


class ContentModerationService:
    """Service for moderating user-generated content"""

    def __init__(
        self,
        db: AsyncSession,
        spam_service: Optional[SpamDetectionService] = None,
        config: Optional[SystemConfig] = None,
        session_factory: Optional[Callable[[], AsyncSession]] = None,
        notifier: Optional[AuthorNotifier] = None,
    ):
        self.db = db
        self.config = config or get_config()
        self.spam_service = spam_service or SpamDetectionService(db, self.config.spam)
        self.reports = ReportingService(db)
        self.audit = ModerationAuditLogger(db)
        self.notifier = notifier or AuthorNotifier()
        # Per-type fetches run concurrently only with a session per task
        self.session_factory = session_factory

    def _adapter(self, content_type: ContentType, db: Optional[AsyncSession] = None):
        return get_adapter(content_type, db or self.db, self.config.moderation)

    # Listing

    async def list_content(self, query: ListContentQuery, user: ModerationUser) -> PaginatedContent:
        """
        Fetch content of the requested types, attach open report counts,
        then sort and paginate the merged list.
        """
        verify_moderation_permission(user)

        try:
            content_types = list(dict.fromkeys(query.content_types))
            if self.session_factory is not None:
                batches = await asyncio.gather(
                    *(self._fetch_in_own_session(t, query) for t in content_types)
                )
            else:
                batches = [await self._fetch_with_counts(self.db, t, query) for t in content_types]

            items = [item for batch in batches for item in batch]
            items = sort_content(items, query.sort_by, query.sort_order)
            return paginate(items, query.page, query.limit)
        except Exception as e:
            logger.error(f"Error listing content for moderation: {e}", exc_info=True)
            raise ModerationOperationError("Failed to list content for moderation") from e

    async def _fetch_with_counts(
        self, db: AsyncSession, content_type: ContentType, query: ListContentQuery
    ) -> List[ContentItem]:
        items = await self._adapter(content_type, db).fetch_many(query)
        counts = await ReportingService(db).get_report_counts(content_type, [i.id for i in items])
        for item in items:
            item.report_count = counts.get(item.id, 0)
        return items

    async def _fetch_in_own_session(
        self, content_type: ContentType, query: ListContentQuery
    ) -> List[ContentItem]:
        async with self.session_factory() as db:
            return await self._fetch_with_counts(db, content_type, query)

    async def list_reported_content(
        self, query: ListReportedContentQuery, user: ModerationUser
    ) -> PaginatedContent:
        verify_moderation_permission(user)

        try:
            groups = await self.reports.get_open_report_groups(query.content_type, query.reason)
            groups = [g for g in groups if g.count >= query.min_report_count]

            items = []
            for group in groups:
                try:
                    item = await self._adapter(group.content_type).fetch_one(group.content_id)
                except Exception as e:
                    logger.warning(
                        f"Skipping reported {group.content_type.value}:{group.content_id}: {e}"
                    )
                    continue
                if item is None:
                    logger.warning(
                        f"Reported {group.content_type.value}:{group.content_id} no longer exists"
                    )
                    continue
                item.report_count = group.count
                items.append(item)

            items = sort_content(items, query.sort_by, query.sort_order)
            return paginate(items, query.page, query.limit)
        except Exception as e:
            logger.error(f"Error listing reported content: {e}", exc_info=True)
            raise ModerationOperationError("Failed to list reported content") from e

    async def list_moderation_logs(
        self, query: ModerationLogQuery, user: ModerationUser
    ) -> PaginatedModerationLogs:
        verify_moderation_permission(user)

        try:
            entries, total = await self.audit.list_logs(
                moderator_id=query.moderator_id,
                action=query.action,
                target_type=query.target_type,
                target_id=query.target_id,
                start_date=query.start_date,
                end_date=query.end_date,
                page=query.page,
                limit=query.limit,
            )
            return PaginatedModerationLogs(
                items=[ModerationLogOut.model_validate(e) for e in entries],
                pagination=build_pagination(total, query.page, query.limit),
            )
        except Exception as e:
            logger.error(f"Error listing moderation logs: {e}", exc_info=True)
            raise ModerationOperationError("Failed to list moderation logs") from e

    # State transitions

    async def approve_content(
        self,
        content_type: ContentType,
        content_id: str,
        data: ApproveContentInput,
        user: ModerationUser,
    ) -> ModerationActionResult:
        verify_moderation_permission(user)
        content_type = ContentType(content_type)

        try:
            await self._adapter(content_type).set_status(content_id, ContentStatus.approved)
            await self._record(user, AuditAction.APPROVE, content_type, content_id, data.note)
            await self._resolve_reports(content_type, content_id, ReportStatus.resolved_no_action, user)

            logger.info(f"Content approved: {content_type.value}:{content_id} by {user.username}")
            return ModerationActionResult(success=True, message="Content approved successfully")
        except ContentNotFoundError:
            raise
        except Exception as e:
            logger.error(f"Error approving content {content_type.value}:{content_id}: {e}", exc_info=True)
            await self.db.rollback()
            raise ModerationOperationError("Failed to approve content") from e

    async def reject_content(
        self,
        content_type: ContentType,
        content_id: str,
        data: RejectContentInput,
        user: ModerationUser,
    ) -> ModerationActionResult:
        verify_moderation_permission(user)
        self._require_reason(data.reason)
        content_type = ContentType(content_type)

        try:
            await self._adapter(content_type).set_status(content_id, ContentStatus.rejected)
            await self._record(user, AuditAction.REJECT, content_type, content_id, data.reason)
            await self._resolve_reports(content_type, content_id, ReportStatus.resolved_violation, user)
            if data.notify_author:
                await self._notify(content_type, content_id, "rejected", data.reason)

            logger.info(f"Content rejected: {content_type.value}:{content_id} by {user.username}")
            return ModerationActionResult(success=True, message="Content rejected successfully")
        except ContentNotFoundError:
            raise
        except Exception as e:
            logger.error(f"Error rejecting content {content_type.value}:{content_id}: {e}", exc_info=True)
            await self.db.rollback()
            raise ModerationOperationError("Failed to reject content") from e

    async def hide_content(
        self,
        content_type: ContentType,
        content_id: str,
        data: HideContentInput,
        user: ModerationUser,
    ) -> ModerationActionResult:
        verify_moderation_permission(user)
        self._require_reason(data.reason)
        content_type = ContentType(content_type)

        try:
            await self._adapter(content_type).set_status(content_id, ContentStatus.hidden)
            await self._record(user, AuditAction.HIDE, content_type, content_id, data.reason)
            if data.notify_author:
                await self._notify(content_type, content_id, "hidden", data.reason)

            logger.info(f"Content hidden: {content_type.value}:{content_id} by {user.username}")
            return ModerationActionResult(success=True, message="Content hidden successfully")
        except ContentNotFoundError:
            raise
        except Exception as e:
            logger.error(f"Error hiding content {content_type.value}:{content_id}: {e}", exc_info=True)
            await self.db.rollback()
            raise ModerationOperationError("Failed to hide content") from e

    async def delete_content(
        self,
        content_type: ContentType,
        content_id: str,
        data: DeleteContentInput,
        user: ModerationUser,
    ) -> ModerationActionResult:
        if data.hard_delete:
            verify_hard_delete_permission(user)
        verify_moderation_permission(user)
        self._require_reason(data.reason)
        content_type = ContentType(content_type)

        try:
            adapter = self._adapter(content_type)
            if data.hard_delete:
                await adapter.hard_delete(content_id)
                action = AuditAction.HARD_DELETE
            else:
                await adapter.set_status(content_id, ContentStatus.deleted)
                action = AuditAction.SOFT_DELETE

            await self._record(user, action, content_type, content_id, data.reason)
            await self._resolve_reports(content_type, content_id, ReportStatus.resolved_violation, user)

            logger.info(
                f"Content deleted (hard: {data.hard_delete}): {content_type.value}:{content_id} by {user.username}"
            )
            message = "Content permanently deleted" if data.hard_delete else "Content deleted successfully"
            return ModerationActionResult(success=True, message=message)
        except ContentNotFoundError:
            raise
        except Exception as e:
            logger.error(f"Error deleting content {content_type.value}:{content_id}: {e}", exc_info=True)
            await self.db.rollback()
            raise ModerationOperationError("Failed to delete content") from e

    async def bulk_action(self, request: BulkActionRequest, user: ModerationUser) -> BulkActionResult:
        """
        Apply one action to many items, in order.

        A failing item is counted and described in ``errors``; the remaining
        items are still processed. Deletes are always soft.
        """
        verify_moderation_permission(user)

        processed = 0
        failed = 0
        errors = []

        for item in request.items:
            try:
                await self._apply_bulk_item(request, item.type, item.id, user)
                processed += 1
            except Exception as e:
                failed += 1
                errors.append(f"{item.type.value}:{item.id} - {e}")
                logger.warning(f"Bulk action failed for {item.type.value}:{item.id}: {e}")

        logger.info(f"Bulk {request.action.value} completed: {processed} processed, {failed} failed")
        return BulkActionResult(
            success=failed == 0,
            processed=processed,
            failed=failed,
            errors=errors,
        )

    async def _apply_bulk_item(
        self,
        request: BulkActionRequest,
        content_type: ContentType,
        content_id: str,
        user: ModerationUser,
    ) -> None:
        action = request.action
        if action == BulkAction.approve:
            await self.approve_content(content_type, content_id, ApproveContentInput(), user)
            return

        if not request.reason or not request.reason.strip():
            raise ModerationValidationError(f"Reason is required for {action.value} action")

        # The shared reason is only checked for presence, as in single actions
        if action == BulkAction.reject:
            data = RejectContentInput.model_construct(
                reason=request.reason, notify_author=request.notify_authors
            )
            await self.reject_content(content_type, content_id, data, user)
        elif action == BulkAction.hide:
            data = HideContentInput.model_construct(
                reason=request.reason, notify_author=request.notify_authors
            )
            await self.hide_content(content_type, content_id, data, user)
        elif action == BulkAction.delete:
            data = DeleteContentInput.model_construct(reason=request.reason, hard_delete=False)
            await self.delete_content(content_type, content_id, data, user)

    # Automatic flagging

    async def auto_flag_spam(
        self,
        content_type: ContentType,
        content_id: str,
        content: str,
        title: Optional[str] = None,
    ) -> None:
        """Score new content and flag it when it is spam. Never raises."""
        try:
            content_type = ContentType(content_type)
            analysis = await self.spam_service.analyze_content(content, title)
            if not analysis.is_spam:
                return

            await self._adapter(content_type).set_spam_score(content_id, analysis.spam_score)
            outcome = await self.audit.record(
                Actor.system(),
                AuditAction.AUTO_FLAG,
                content_type,
                content_id,
                reason=f"Spam detected: {analysis.reason} (score: {analysis.spam_score})",
                metadata={
                    "spamScore": analysis.spam_score,
                    "flaggedKeywords": list(analysis.flagged_keywords),
                    "confidence": analysis.confidence,
                },
            )
            if not outcome.ok:
                logger.warning(f"Auto-flag of {content_type.value}:{content_id} not audited: {outcome.error}")

            logger.info(
                f"Content auto-flagged as spam: {content_type.value}:{content_id} (score: {analysis.spam_score})"
            )
        except Exception as e:
            logger.error(f"Error auto-flagging content {content_type}:{content_id}: {e}", exc_info=True)

    # Best-effort side effects

    @staticmethod
    def _require_reason(reason: Optional[str]) -> None:
        if not reason or not reason.strip():
            raise ModerationValidationError("Reason is required")

    async def _record(
        self,
        user: ModerationUser,
        action: AuditAction,
        content_type: ContentType,
        content_id: str,
        reason: Optional[str],
    ) -> None:
        events.log_moderation_event(
            logging.INFO, action.value, content_type.value, content_id, user.id, reason=reason
        )
        outcome = await self.audit.record(Actor(user.id), action, content_type, content_id, reason)
        if not outcome.ok:
            logger.warning(f"Audit log for {action.value} on {content_type.value}:{content_id} failed: {outcome.error}")

    async def _resolve_reports(
        self,
        content_type: ContentType,
        content_id: str,
        resolution: ReportStatus,
        user: ModerationUser,
    ) -> None:
        outcome = await self.reports.resolve_content_reports(content_type, content_id, resolution, user.id)
        if not outcome.ok:
            logger.warning(f"Reports on {content_type.value}:{content_id} left open: {outcome.error}")

    async def _notify(self, content_type: ContentType, content_id: str, action: str, reason: str) -> None:
        outcome = await self.notifier.notify(content_type, content_id, action, reason)
        if not outcome.ok:
            logger.warning(f"Author of {content_type.value}:{content_id} not notified: {outcome.error}")
