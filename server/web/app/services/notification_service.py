"""
Author notifications for moderation decisions.

Delivery is not wired to any channel yet; notifications are logged.
"""
import logging

from server.web.app.models import ContentType
from server.web.app.services.audit_service import SideEffectOutcome

logger = logging.getLogger(__name__)


class AuthorNotifier:
    async def notify(
        self,
        content_type: ContentType,
        content_id: str,
        action: str,
        reason: str,
    ) -> SideEffectOutcome:
        try:
            logger.info(
                f"Notifying author of {ContentType(content_type).value} {content_id}: {action} ({reason})"
            )
            return SideEffectOutcome(ok=True)
        except Exception as e:
            logger.error(f"Failed to notify author of {content_id}: {e}")
            return SideEffectOutcome(ok=False, error=str(e))
