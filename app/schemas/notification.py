from datetime import datetime

from pydantic import BaseModel


class NotificationResponse(BaseModel):
    id: str
    type: str
    title: str
    message: str
    sender_id: str | None = None
    sender_name: str | None = None
    project_id: str | None = None
    project_title: str | None = None
    data: dict | None = None
    read: bool
    created_at: datetime


class PaginatedNotifications(BaseModel):
    items: list[NotificationResponse]
    total: int
    unread_count: int
    page: int
    page_size: int
