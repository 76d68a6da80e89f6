from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class SendMessageRequest(BaseModel):
    recipient_id: str
    text: str = Field(min_length=1, max_length=5000)
    project_id: str | None = None


class SendMessageResponse(BaseModel):
    message_id: str
    conversation_id: str
    timestamp: datetime


class Participant(BaseModel):
    id: str
    name: str
    role: str


class ConversationResponse(BaseModel):
    id: str
    participant: Participant | None
    last_message: str
    timestamp: datetime
    unread: int
    project: str | None = None


class MessageResponse(BaseModel):
    id: str
    text: str
    sender: Literal["me", "them"]
    read: bool
    timestamp: datetime
