"""
Pydantic schemas for the moderation API and services.
"""
from datetime import datetime
from enum import Enum
from typing import Optional, List, Literal

from pydantic import BaseModel, Field, ConfigDict, field_validator

from .models import ContentType, ContentStatus


class ModerationUser(BaseModel):
    """The authenticated caller of a moderation operation."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    role: str
    username: str


class ContentAuthor(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    email: str


class ContentItem(BaseModel):
    """Normalized view over articles, topics, replies and jobs."""
    id: str
    type: ContentType
    title: Optional[str] = None
    content: str
    author_id: str
    author: ContentAuthor
    status: str
    spam_score: Optional[int] = None
    report_count: int = 0
    created_at: datetime
    updated_at: datetime
    flagged_by_system: bool = False


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class PaginatedContent(BaseModel):
    items: List[ContentItem]
    pagination: Pagination


class ModerationActionResult(BaseModel):
    success: bool
    message: str


# Action inputs

class ApproveContentInput(BaseModel):
    note: Optional[str] = Field(None, max_length=1000)


class RejectContentInput(BaseModel):
    reason: str = Field(..., min_length=10, max_length=1000)
    notify_author: bool = True


class HideContentInput(BaseModel):
    reason: str = Field(..., min_length=10, max_length=1000)
    notify_author: bool = True


class DeleteContentInput(BaseModel):
    reason: str = Field(..., min_length=10, max_length=1000)
    hard_delete: bool = False


class BulkAction(str, Enum):
    approve = "approve"
    reject = "reject"
    hide = "hide"
    delete = "delete"


class BulkActionItem(BaseModel):
    type: ContentType
    id: str


class BulkActionRequest(BaseModel):
    action: BulkAction
    items: List[BulkActionItem] = Field(..., min_length=1, max_length=100)
    reason: Optional[str] = Field(None, max_length=1000)
    notify_authors: bool = True


class BulkActionResult(BaseModel):
    success: bool
    processed: int
    failed: int
    errors: List[str] = Field(default_factory=list)


# Spam scoring

class SpamAnalysisResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    spam_score: int = Field(..., ge=0, le=100)
    is_spam: bool
    flagged_keywords: List[str] = Field(default_factory=list)
    reason: str = Field(..., min_length=1)
    confidence: float = Field(..., ge=0.0, le=1.0)

    @classmethod
    def failed(cls) -> "SpamAnalysisResult":
        return cls(
            spam_score=0,
            is_spam=False,
            flagged_keywords=[],
            reason="Analysis failed",
            confidence=0.0,
        )


class SpamAnalysisRequest(BaseModel):
    content: str = Field(..., min_length=1)
    title: Optional[str] = None


class SpamKeywordCreate(BaseModel):
    keyword: str = Field(..., min_length=1, max_length=255)
    severity: int = Field(1, ge=1, le=10)

    @field_validator("keyword")
    @classmethod
    def strip_keyword(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Keyword cannot be blank")
        return v


class SpamKeywordUpdate(BaseModel):
    severity: Optional[int] = Field(None, ge=1, le=10)
    is_active: Optional[bool] = None


class SpamKeywordOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    keyword: str
    severity: int
    is_active: bool
    created_at: datetime
    updated_at: datetime


# Queries

SortField = Literal["created_at", "updated_at", "spam_score", "report_count"]
SortOrder = Literal["asc", "desc"]


class ListContentQuery(BaseModel):
    content_types: List[ContentType] = Field(default_factory=lambda: list(ContentType))
    status: Optional[ContentStatus] = None
    author_id: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    # Accepted but not applied as predicates
    reported: Optional[bool] = None
    flagged_by_system: Optional[bool] = None
    min_spam_score: Optional[int] = Field(None, ge=0, le=100)

    sort_by: SortField = "created_at"
    sort_order: SortOrder = "desc"
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=100)


class ListReportedContentQuery(BaseModel):
    content_type: Optional[ContentType] = None
    reason: Optional[str] = None
    min_report_count: int = Field(1, ge=1)

    sort_by: SortField = "report_count"
    sort_order: SortOrder = "desc"
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=100)


class ModerationLogQuery(BaseModel):
    moderator_id: Optional[str] = None
    action: Optional[str] = None
    target_type: Optional[ContentType] = None
    target_id: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=100)


class ModerationLogOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    moderator_id: str
    action: str
    target_type: str
    target_id: str
    reason: Optional[str] = None
    metadata: Optional[dict] = Field(None, validation_alias="meta_data")
    created_at: datetime


class PaginatedModerationLogs(BaseModel):
    items: List[ModerationLogOut]
    pagination: Pagination
