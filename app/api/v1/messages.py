from datetime import datetime, timezone
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from app.core.database import get_db
from app.core.dependencies import get_current_user
from app.models.conversation import Conversation, Message
from app.models.project import Project
from app.models.user import User
from app.schemas.message import (
    ConversationResponse,
    MessageResponse,
    Participant,
    SendMessageRequest,
    SendMessageResponse,
)

logger = structlog.get_logger()
router = APIRouter(prefix="/messages", tags=["messages"])

Other = aliased(User)


def _pair(a: UUID, b: UUID) -> tuple[UUID, UUID]:
    """Order a user pair so each pair maps to a single conversation row."""
    return (a, b) if str(a) < str(b) else (b, a)


async def _get_conversation(db: AsyncSession, conversation_id: UUID, user: User) -> Conversation:
    conversation = await db.get(Conversation, conversation_id)
    if not conversation or user.id not in (conversation.user_one_id, conversation.user_two_id):
        raise HTTPException(status_code=404, detail="Conversation not found")
    return conversation


@router.get("/conversations", response_model=list[ConversationResponse])
async def get_conversations(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    me = current_user.id
    result = await db.execute(
        select(Conversation, Other, Project.title)
        .outerjoin(
            Other,
            or_(
                and_(Conversation.user_one_id == me, Other.id == Conversation.user_two_id),
                and_(Conversation.user_two_id == me, Other.id == Conversation.user_one_id),
            ),
        )
        .outerjoin(Project, Project.id == Conversation.project_id)
        .where(or_(Conversation.user_one_id == me, Conversation.user_two_id == me))
        .order_by(Conversation.last_message_at.desc())
    )
    rows = result.all()

    unread_by_conversation = {}
    if rows:
        unread = await db.execute(
            select(Message.conversation_id, func.count())
            .where(
                Message.conversation_id.in_([conv.id for conv, _, _ in rows]),
                Message.sender_id != me,
                Message.read == False,  # noqa: E712
            )
            .group_by(Message.conversation_id)
        )
        unread_by_conversation = dict(unread.all())

    return [
        ConversationResponse(
            id=str(conv.id),
            participant=Participant(id=str(other.id), name=other.full_name, role=other.role)
            if other
            else None,
            last_message=conv.last_message,
            timestamp=conv.last_message_at,
            unread=unread_by_conversation.get(conv.id, 0),
            project=project_title,
        )
        for conv, other, project_title in rows
    ]


@router.post("/send", response_model=SendMessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message(
    data: SendMessageRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        recipient_id = UUID(data.recipient_id)
    except ValueError:
        raise HTTPException(status_code=404, detail="Recipient not found")

    if recipient_id == current_user.id:
        raise HTTPException(status_code=400, detail="Cannot send a message to yourself")

    recipient = await db.get(User, recipient_id)
    if not recipient:
        raise HTTPException(status_code=404, detail="Recipient not found")

    project_id = None
    if data.project_id:
        try:
            project_id = UUID(data.project_id)
        except ValueError:
            raise HTTPException(status_code=404, detail="Project not found")
        if not await db.get(Project, project_id):
            raise HTTPException(status_code=404, detail="Project not found")

    user_one_id, user_two_id = _pair(current_user.id, recipient_id)
    result = await db.execute(
        select(Conversation).where(
            and_(
                Conversation.user_one_id == user_one_id,
                Conversation.user_two_id == user_two_id,
            )
        )
    )
    conversation = result.scalar_one_or_none()

    now = datetime.now(timezone.utc)
    if conversation is None:
        conversation = Conversation(
            user_one_id=user_one_id,
            user_two_id=user_two_id,
            project_id=project_id,
            last_message=data.text,
            last_message_at=now,
        )
        db.add(conversation)
        await db.flush()
        logger.info("conversation_created", conversation_id=str(conversation.id))
    else:
        conversation.last_message = data.text
        conversation.last_message_at = now
        if project_id and conversation.project_id is None:
            conversation.project_id = project_id

    message = Message(
        conversation_id=conversation.id,
        sender_id=current_user.id,
        text=data.text,
        created_at=now,
    )
    db.add(message)
    await db.flush()

    return SendMessageResponse(
        message_id=str(message.id),
        conversation_id=str(conversation.id),
        timestamp=message.created_at,
    )


@router.get("/{conversation_id}", response_model=list[MessageResponse])
async def get_messages(
    conversation_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await _get_conversation(db, conversation_id, current_user)

    result = await db.execute(
        select(Message)
        .where(Message.conversation_id == conversation_id)
        .order_by(Message.created_at.asc())
    )
    return [
        MessageResponse(
            id=str(msg.id),
            text=msg.text,
            sender="me" if msg.sender_id == current_user.id else "them",
            read=msg.read,
            timestamp=msg.created_at,
        )
        for msg in result.scalars().all()
    ]


@router.delete("/{conversation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_conversation(
    conversation_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    conversation = await _get_conversation(db, conversation_id, current_user)

    logger.info("conversation_deleted", conversation_id=str(conversation.id))

    await db.delete(conversation)


@router.patch("/{conversation_id}/read")
async def mark_conversation_read(
    conversation_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await _get_conversation(db, conversation_id, current_user)

    result = await db.execute(
        update(Message)
        .where(
            Message.conversation_id == conversation_id,
            Message.sender_id != current_user.id,
            Message.read == False,  # noqa: E712
        )
        .values(read=True)
    )
    await db.flush()

    return {"status": "ok", "count": result.rowcount}


@router.patch("/{conversation_id}/unread")
async def mark_conversation_unread(
    conversation_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Flag the latest incoming message as unread again."""
    await _get_conversation(db, conversation_id, current_user)

    result = await db.execute(
        select(Message)
        .where(
            Message.conversation_id == conversation_id,
            Message.sender_id != current_user.id,
        )
        .order_by(Message.created_at.desc())
        .limit(1)
    )
    message = result.scalar_one_or_none()
    if message:
        message.read = False
        await db.flush()

    return {"status": "ok"}
