"""
Application-wide dependencies for FastAPI.
"""
from typing import Callable

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from shared_lib.config import SystemConfig, get_config
from .db import get_db, AsyncSessionLocal
from .middleware.permissions import get_current_user
from .services.content_moderation_service import ContentModerationService
from .services.spam_detection_service import SpamDetectionService

__all__ = [
    "get_db",
    "get_current_user",
    "get_settings",
    "get_session_factory",
    "get_spam_detection_service",
    "get_content_moderation_service",
]


def get_settings() -> SystemConfig:
    return get_config()


def get_session_factory() -> Callable[[], AsyncSession]:
    return AsyncSessionLocal


def get_spam_detection_service(
    db: AsyncSession = Depends(get_db),
    settings: SystemConfig = Depends(get_settings),
) -> SpamDetectionService:
    return SpamDetectionService(db, settings.spam)


def get_content_moderation_service(
    db: AsyncSession = Depends(get_db),
    settings: SystemConfig = Depends(get_settings),
    session_factory: Callable[[], AsyncSession] = Depends(get_session_factory),
    spam_service: SpamDetectionService = Depends(get_spam_detection_service),
) -> ContentModerationService:
    return ContentModerationService(
        db,
        spam_service=spam_service,
        config=settings,
        session_factory=session_factory,
    )
