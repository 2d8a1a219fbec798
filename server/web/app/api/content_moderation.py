"""
Content Moderation API Endpoints

Admin REST API over the unified moderation view, moderation actions and the
spam scoring engine.
"""
from datetime import datetime
from typing import Optional, List

from fastapi import APIRouter, Depends, Query

from ..dependencies import (
    get_current_user,
    get_content_moderation_service,
    get_spam_detection_service,
)
from ..middleware.permissions import ModerationPermissionChecker
from ..models import ContentType, ContentStatus
from ..schemas import (
    ModerationUser,
    PaginatedContent,
    PaginatedModerationLogs,
    ModerationActionResult,
    ApproveContentInput,
    RejectContentInput,
    HideContentInput,
    DeleteContentInput,
    BulkActionRequest,
    BulkActionResult,
    ListContentQuery,
    ListReportedContentQuery,
    ModerationLogQuery,
    SortField,
    SortOrder,
    SpamAnalysisRequest,
    SpamAnalysisResult,
    SpamKeywordCreate,
    SpamKeywordUpdate,
    SpamKeywordOut,
)
from ..services.content_moderation_service import ContentModerationService
from ..services.spam_detection_service import SpamDetectionService


router = APIRouter(prefix="/admin/content", tags=["content-moderation"])

require_moderator = ModerationPermissionChecker()


@router.get("", response_model=PaginatedContent)
async def list_content(
    content_types: Optional[List[ContentType]] = Query(None, alias="type"),
    status: Optional[ContentStatus] = Query(None),
    author_id: Optional[str] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    reported: Optional[bool] = Query(None),
    flagged_by_system: Optional[bool] = Query(None),
    min_spam_score: Optional[int] = Query(None, ge=0, le=100),
    sort_by: SortField = Query("created_at"),
    sort_order: SortOrder = Query("desc"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: ModerationUser = Depends(get_current_user),
    service: ContentModerationService = Depends(get_content_moderation_service),
):
    """List articles, topics, replies and jobs in one moderation view."""
    query = ListContentQuery(
        content_types=content_types or list(ContentType),
        status=status,
        author_id=author_id,
        start_date=start_date,
        end_date=end_date,
        reported=reported,
        flagged_by_system=flagged_by_system,
        min_spam_score=min_spam_score,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )
    return await service.list_content(query, current_user)


@router.get("/reported", response_model=PaginatedContent)
async def list_reported_content(
    content_type: Optional[ContentType] = Query(None, alias="type"),
    reason: Optional[str] = Query(None),
    min_report_count: int = Query(1, ge=1),
    sort_by: SortField = Query("report_count"),
    sort_order: SortOrder = Query("desc"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: ModerationUser = Depends(get_current_user),
    service: ContentModerationService = Depends(get_content_moderation_service),
):
    """List content with open reports, most reported first by default."""
    query = ListReportedContentQuery(
        content_type=content_type,
        reason=reason,
        min_report_count=min_report_count,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )
    return await service.list_reported_content(query, current_user)


@router.get("/logs", response_model=PaginatedModerationLogs)
async def list_moderation_logs(
    moderator_id: Optional[str] = Query(None),
    action: Optional[str] = Query(None),
    target_type: Optional[ContentType] = Query(None),
    target_id: Optional[str] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: ModerationUser = Depends(get_current_user),
    service: ContentModerationService = Depends(get_content_moderation_service),
):
    query = ModerationLogQuery(
        moderator_id=moderator_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
    )
    return await service.list_moderation_logs(query, current_user)


@router.post("/bulk", response_model=BulkActionResult)
async def bulk_action(
    request: BulkActionRequest,
    current_user: ModerationUser = Depends(get_current_user),
    service: ContentModerationService = Depends(get_content_moderation_service),
):
    """Apply one action to up to 100 items; per-item failures are reported."""
    return await service.bulk_action(request, current_user)


@router.put("/{content_type}/{content_id}/approve", response_model=ModerationActionResult)
async def approve_content(
    content_type: ContentType,
    content_id: str,
    data: Optional[ApproveContentInput] = None,
    current_user: ModerationUser = Depends(get_current_user),
    service: ContentModerationService = Depends(get_content_moderation_service),
):
    return await service.approve_content(
        content_type, content_id, data or ApproveContentInput(), current_user
    )


@router.put("/{content_type}/{content_id}/reject", response_model=ModerationActionResult)
async def reject_content(
    content_type: ContentType,
    content_id: str,
    data: RejectContentInput,
    current_user: ModerationUser = Depends(get_current_user),
    service: ContentModerationService = Depends(get_content_moderation_service),
):
    return await service.reject_content(content_type, content_id, data, current_user)


@router.put("/{content_type}/{content_id}/hide", response_model=ModerationActionResult)
async def hide_content(
    content_type: ContentType,
    content_id: str,
    data: HideContentInput,
    current_user: ModerationUser = Depends(get_current_user),
    service: ContentModerationService = Depends(get_content_moderation_service),
):
    return await service.hide_content(content_type, content_id, data, current_user)


@router.delete("/{content_type}/{content_id}", response_model=ModerationActionResult)
async def delete_content(
    content_type: ContentType,
    content_id: str,
    data: DeleteContentInput,
    current_user: ModerationUser = Depends(get_current_user),
    service: ContentModerationService = Depends(get_content_moderation_service),
):
    """Soft delete by default; hard delete is restricted to administrators."""
    return await service.delete_content(content_type, content_id, data, current_user)


# Spam scoring

@router.post("/spam/analyze", response_model=SpamAnalysisResult)
async def analyze_content(
    request: SpamAnalysisRequest,
    current_user: ModerationUser = Depends(require_moderator),
    spam_service: SpamDetectionService = Depends(get_spam_detection_service),
):
    return await spam_service.analyze_content(request.content, request.title)


@router.get("/spam/keywords", response_model=List[SpamKeywordOut])
async def list_spam_keywords(
    active_only: bool = Query(False),
    current_user: ModerationUser = Depends(require_moderator),
    spam_service: SpamDetectionService = Depends(get_spam_detection_service),
):
    return await spam_service.list_spam_keywords(active_only=active_only)


@router.post("/spam/keywords", response_model=SpamKeywordOut, status_code=201)
async def add_spam_keyword(
    request: SpamKeywordCreate,
    current_user: ModerationUser = Depends(require_moderator),
    spam_service: SpamDetectionService = Depends(get_spam_detection_service),
):
    return await spam_service.add_spam_keyword(request.keyword, request.severity)


@router.patch("/spam/keywords/{keyword_id}", response_model=SpamKeywordOut)
async def update_spam_keyword(
    keyword_id: int,
    request: SpamKeywordUpdate,
    current_user: ModerationUser = Depends(require_moderator),
    spam_service: SpamDetectionService = Depends(get_spam_detection_service),
):
    return await spam_service.update_spam_keyword(
        keyword_id, severity=request.severity, is_active=request.is_active
    )
