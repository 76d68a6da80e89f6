from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from app.core.database import get_db
from app.core.dependencies import get_current_user
from app.models.notification import Notification
from app.models.project import Project
from app.models.user import User
from app.schemas.notification import NotificationResponse, PaginatedNotifications
from app.services.notification_service import NOTIFICATION_TYPES

logger = structlog.get_logger()
router = APIRouter(prefix="/notifications", tags=["notifications"])

Sender = aliased(User)


def _notification_response(
    n: Notification, sender_name: str | None, project_title: str | None
) -> NotificationResponse:
    return NotificationResponse(
        id=str(n.id),
        type=n.type,
        title=n.title,
        message=n.message,
        sender_id=str(n.sender_id) if n.sender_id else None,
        sender_name=sender_name,
        project_id=str(n.project_id) if n.project_id else None,
        project_title=project_title,
        data=n.data,
        read=n.read,
        created_at=n.created_at,
    )


async def _owned_notification(db: AsyncSession, notification_id: UUID, user: User) -> Notification:
    notification = await db.get(Notification, notification_id)
    if not notification or notification.user_id != user.id:
        raise HTTPException(status_code=404, detail="Notification not found")
    return notification


@router.get("", response_model=PaginatedNotifications)
async def list_notifications(
    read: bool | None = None,
    type: str | None = Query(None, description="Only notifications of this type"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Newest first, with sender name and project title resolved."""
    if type and type not in NOTIFICATION_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid type. Possible values: {', '.join(NOTIFICATION_TYPES)}",
        )

    filters = [Notification.user_id == current_user.id]
    if read is not None:
        filters.append(Notification.read == read)
    if type:
        filters.append(Notification.type == type)

    total = await db.scalar(select(func.count()).select_from(Notification).where(*filters))
    unread_count = await db.scalar(
        select(func.count())
        .select_from(Notification)
        .where(Notification.user_id == current_user.id, Notification.read == False)  # noqa: E712
    )

    result = await db.execute(
        select(Notification, Sender.full_name, Project.title)
        .outerjoin(Sender, Sender.id == Notification.sender_id)
        .outerjoin(Project, Project.id == Notification.project_id)
        .where(*filters)
        .order_by(Notification.created_at.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )

    return PaginatedNotifications(
        items=[_notification_response(n, sender, title) for n, sender, title in result.all()],
        total=total or 0,
        unread_count=unread_count or 0,
        page=page,
        page_size=page_size,
    )


@router.patch("/read-all")
async def mark_all_read(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == current_user.id, Notification.read == False)  # noqa: E712
        .values(read=True)
    )
    await db.flush()

    logger.info("notifications_marked_read", user_id=str(current_user.id), count=result.rowcount)

    return {"status": "ok", "count": result.rowcount}


@router.patch("/{notification_id}/read")
async def mark_notification_read(
    notification_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    notification = await _owned_notification(db, notification_id, current_user)
    notification.read = True
    await db.flush()
    return {"status": "ok", "message": "Marked as read"}


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(
    notification_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    notification = await _owned_notification(db, notification_id, current_user)
    await db.delete(notification)
