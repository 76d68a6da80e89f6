from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.notification import Notification

logger = structlog.get_logger()

NOTIFICATION_TYPES = (
    "application",
    "acceptance",
    "rejection",
    "invite",
    "invite_accepted",
    "invite_rejected",
)


async def create_notification(
    db: AsyncSession,
    user_id: UUID,
    type: str,
    title: str,
    message: str,
    sender_id: UUID | None = None,
    project_id: UUID | None = None,
    data: dict | None = None,
) -> Notification:
    """Create a notification record for ``user_id``."""
    if type not in NOTIFICATION_TYPES:
        raise ValueError(f"Unknown notification type: {type}")

    notification = Notification(
        user_id=user_id,
        sender_id=sender_id,
        project_id=project_id,
        type=type,
        title=title,
        message=message,
        data=data,
    )
    db.add(notification)
    await db.flush()

    logger.info(
        "notification_created",
        user_id=str(user_id),
        type=type,
        project_id=str(project_id) if project_id else None,
    )
    return notification
