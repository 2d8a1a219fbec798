"""
Content type adapters.

Articles, topics, replies and jobs are stored with different shapes. Each
adapter maps one of them onto the common ContentItem view and knows how to
change its moderation state.
"""
import logging
from typing import Dict, List, Optional, Type

from sqlalchemy import select, update, delete, and_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from shared_lib.config import ModerationConfig
from ..models import (
    Article, Topic, Reply, Job, Company, ContentType, ContentStatus
)
from ..schemas import ContentItem, ContentAuthor, ListContentQuery

logger = logging.getLogger(__name__)


class ContentNotFoundError(Exception):
    """Raised when the targeted content row does not exist."""

    def __init__(self, content_type: ContentType, content_id: str):
        self.content_type = content_type
        self.content_id = content_id
        super().__init__(f"{content_type.value.capitalize()} not found")


class ContentAdapter:
    """Common interface over one content table."""

    content_type: ContentType
    model = None

    def __init__(self, db: AsyncSession, config: Optional[ModerationConfig] = None):
        self.db = db
        self.config = config or ModerationConfig()

    async def fetch_many(self, filters: ListContentQuery) -> List[ContentItem]:
        query = self._apply_filters(self._base_query(), filters)
        if query is None:
            return []
        result = await self.db.execute(query)
        return [self._to_item(row) for row in result.scalars().all()]

    async def fetch_one(self, content_id: str) -> Optional[ContentItem]:
        result = await self.db.execute(
            self._base_query().where(self.model.id == content_id)
        )
        row = result.scalar_one_or_none()
        return self._to_item(row) if row else None

    async def set_status(self, content_id: str, status: ContentStatus) -> None:
        raise NotImplementedError

    async def hard_delete(self, content_id: str) -> None:
        result = await self.db.execute(
            delete(self.model).where(self.model.id == content_id)
        )
        if result.rowcount == 0:
            raise ContentNotFoundError(self.content_type, content_id)
        await self.db.commit()
        logger.info(f"Hard deleted {self.content_type.value} {content_id}")

    async def set_spam_score(self, content_id: str, score: int) -> None:
        """Only forum content carries a spam score."""
        return None

    def _base_query(self):
        return select(self.model).order_by(self.model.created_at.desc())

    def _apply_filters(self, query, filters: ListContentQuery):
        if filters.author_id:
            query = query.where(self.model.author_id == filters.author_id)
        return self._apply_date_range(query, filters)

    def _apply_date_range(self, query, filters: ListContentQuery):
        if filters.start_date:
            query = query.where(self.model.created_at >= filters.start_date)
        if filters.end_date:
            query = query.where(self.model.created_at <= filters.end_date)
        return query

    def _preview(self, text: str) -> str:
        return (text or "")[:self.config.preview_length]

    def _to_item(self, row) -> ContentItem:
        raise NotImplementedError

    async def _assert_exists(self, content_id: str) -> None:
        found = await self.db.scalar(
            select(self.model.id).where(self.model.id == content_id)
        )
        if found is None:
            raise ContentNotFoundError(self.content_type, content_id)


class _StatusColumnAdapter(ContentAdapter):
    """Content with an explicit status column (articles, jobs)."""

    async def set_status(self, content_id: str, status: ContentStatus) -> None:
        result = await self.db.execute(
            update(self.model)
            .where(self.model.id == content_id)
            .values(status=ContentStatus(status).value)
        )
        if result.rowcount == 0:
            raise ContentNotFoundError(self.content_type, content_id)
        await self.db.commit()

    def _apply_filters(self, query, filters: ListContentQuery):
        if filters.status:
            query = query.where(self.model.status == filters.status.value)
        return super()._apply_filters(query, filters)


class _SoftDeleteFlagAdapter(ContentAdapter):
    """Forum content with only an is_deleted flag and a spam score."""

    async def set_status(self, content_id: str, status: ContentStatus) -> None:
        if ContentStatus(status) != ContentStatus.deleted:
            # No status column; approve, reject and hide leave the row as is
            await self._assert_exists(content_id)
            return
        result = await self.db.execute(
            update(self.model)
            .where(self.model.id == content_id)
            .values(is_deleted=True)
        )
        if result.rowcount == 0:
            raise ContentNotFoundError(self.content_type, content_id)
        await self.db.commit()

    async def set_spam_score(self, content_id: str, score: int) -> None:
        result = await self.db.execute(
            update(self.model)
            .where(self.model.id == content_id)
            .values(spam_score=score)
        )
        if result.rowcount == 0:
            raise ContentNotFoundError(self.content_type, content_id)
        await self.db.commit()

    def _base_query(self):
        return super()._base_query().options(selectinload(self.model.author))

    def _apply_filters(self, query, filters: ListContentQuery):
        if filters.status:
            if filters.status == ContentStatus.deleted:
                query = query.where(self.model.is_deleted == True)
            elif filters.status == ContentStatus.approved:
                query = query.where(self.model.is_deleted == False)
            else:
                # Derived status is only ever approved or deleted
                return None
        return super()._apply_filters(query, filters)

    def _derived_status(self, row) -> str:
        if row.is_deleted:
            return ContentStatus.deleted.value
        return ContentStatus.approved.value

    def _spam_fields(self, row) -> Dict:
        score = row.spam_score or 0
        return {
            "spam_score": score,
            "flagged_by_system": score > self.config.flagged_threshold,
        }


class ArticleAdapter(_StatusColumnAdapter):
    content_type = ContentType.article
    model = Article

    def _base_query(self):
        return super()._base_query().options(selectinload(Article.author))

    def _to_item(self, row: Article) -> ContentItem:
        return ContentItem(
            id=row.id,
            type=self.content_type,
            title=row.title,
            content=row.excerpt or self._preview(row.content),
            author_id=row.author_id,
            author=ContentAuthor.model_validate(row.author),
            status=row.status,
            spam_score=0,
            created_at=row.created_at,
            updated_at=row.updated_at,
            flagged_by_system=False,
        )


class JobAdapter(_StatusColumnAdapter):
    """Jobs are authored by the user who owns the posting company."""
    content_type = ContentType.job
    model = Job

    def _base_query(self):
        return super()._base_query().options(
            selectinload(Job.company).selectinload(Company.user)
        )

    def _apply_filters(self, query, filters: ListContentQuery):
        if filters.status:
            query = query.where(Job.status == filters.status.value)
        if filters.author_id:
            query = query.where(
                Job.company_id.in_(
                    select(Company.id).where(Company.user_id == filters.author_id)
                )
            )
        return self._apply_date_range(query, filters)

    def _to_item(self, row: Job) -> ContentItem:
        owner = row.company.user
        return ContentItem(
            id=row.id,
            type=self.content_type,
            title=row.title,
            content=self._preview(row.description),
            author_id=owner.id,
            author=ContentAuthor.model_validate(owner),
            status=row.status,
            spam_score=0,
            created_at=row.created_at,
            updated_at=row.updated_at,
            flagged_by_system=False,
        )


class TopicAdapter(_SoftDeleteFlagAdapter):
    content_type = ContentType.topic
    model = Topic

    def _to_item(self, row: Topic) -> ContentItem:
        return ContentItem(
            id=row.id,
            type=self.content_type,
            title=row.title,
            content=self._preview(row.content),
            author_id=row.author_id,
            author=ContentAuthor.model_validate(row.author),
            status=self._derived_status(row),
            created_at=row.created_at,
            updated_at=row.updated_at,
            **self._spam_fields(row),
        )


class ReplyAdapter(_SoftDeleteFlagAdapter):
    content_type = ContentType.reply
    model = Reply

    async def fetch_many(self, filters: ListContentQuery) -> List[ContentItem]:
        query = self._apply_filters(self._base_query(), filters)
        if query is None:
            return []
        result = await self.db.execute(query.limit(self.config.reply_fetch_limit))
        return [self._to_item(row) for row in result.scalars().all()]

    def _to_item(self, row: Reply) -> ContentItem:
        return ContentItem(
            id=row.id,
            type=self.content_type,
            content=self._preview(row.content),
            author_id=row.author_id,
            author=ContentAuthor.model_validate(row.author),
            status=self._derived_status(row),
            created_at=row.created_at,
            updated_at=row.updated_at,
            **self._spam_fields(row),
        )


ADAPTERS: Dict[ContentType, Type[ContentAdapter]] = {
    ContentType.article: ArticleAdapter,
    ContentType.topic: TopicAdapter,
    ContentType.reply: ReplyAdapter,
    ContentType.job: JobAdapter,
}


def get_adapter(
    content_type: ContentType,
    db: AsyncSession,
    config: Optional[ModerationConfig] = None,
) -> ContentAdapter:
    """Select the adapter for a content type."""
    try:
        adapter_cls = ADAPTERS[ContentType(content_type)]
    except (KeyError, ValueError):
        raise ValueError(f"Unsupported content type: {content_type}")
    return adapter_cls(db, config)
