"""
Moderation audit trail.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from server.web.app.models import ModerationLog, ContentType

logger = logging.getLogger(__name__)

SYSTEM_ACTOR_ID = "system"


class AuditAction(str, Enum):
    APPROVE = "approve_content"
    REJECT = "reject_content"
    HIDE = "hide_content"
    SOFT_DELETE = "soft_delete_content"
    HARD_DELETE = "hard_delete_content"
    AUTO_FLAG = "auto_flag_spam"


@dataclass(frozen=True)
class Actor:
    """Who performed a moderation action: a user, or the system itself."""
    user_id: Optional[str] = None

    @classmethod
    def system(cls) -> "Actor":
        return cls(user_id=None)

    @property
    def is_system(self) -> bool:
        return self.user_id is None

    @property
    def storage_id(self) -> str:
        return SYSTEM_ACTOR_ID if self.is_system else self.user_id


@dataclass(frozen=True)
class SideEffectOutcome:
    """Result of a best-effort write that must never fail the caller."""
    ok: bool
    error: Optional[str] = None


class ModerationAuditLogger:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def record(
        self,
        actor: Actor,
        action: AuditAction,
        target_type: ContentType,
        target_id: str,
        reason: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> SideEffectOutcome:
        entry = ModerationLog(
            moderator_id=actor.storage_id,
            action=AuditAction(action).value,
            target_type=ContentType(target_type).value,
            target_id=target_id,
            reason=reason,
            meta_data=metadata,
        )
        try:
            self.db.add(entry)
            await self.db.commit()
            return SideEffectOutcome(ok=True)
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to write moderation log {entry.action} on {target_id}: {e}")
            return SideEffectOutcome(ok=False, error=str(e))

    async def list_logs(
        self,
        moderator_id: Optional[str] = None,
        action: Optional[str] = None,
        target_type: Optional[ContentType] = None,
        target_id: Optional[str] = None,
        start_date=None,
        end_date=None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[ModerationLog], int]:
        """Filtered log entries, newest first, with the total match count."""
        conditions = []
        if moderator_id:
            conditions.append(ModerationLog.moderator_id == moderator_id)
        if action:
            conditions.append(ModerationLog.action == action)
        if target_type:
            conditions.append(ModerationLog.target_type == ContentType(target_type).value)
        if target_id:
            conditions.append(ModerationLog.target_id == target_id)
        if start_date:
            conditions.append(ModerationLog.created_at >= start_date)
        if end_date:
            conditions.append(ModerationLog.created_at <= end_date)

        total = await self.db.scalar(
            select(func.count(ModerationLog.id)).where(*conditions)
        )
        result = await self.db.execute(
            select(ModerationLog)
            .where(*conditions)
            .order_by(ModerationLog.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total or 0
