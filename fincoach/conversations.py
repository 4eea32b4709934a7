from datetime import date, datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from fincoach.errors import ConversationNotFoundError
from fincoach.models import Conversation, Message
from fincoach.results import Deleted, DeleteResult, NotFound
from fincoach.schemas import MessageCreate


def default_title(now: datetime) -> str:
    return f"Chat {now.month}/{now.day}/{now.year}"


def create_conversation(db: Session, title: Optional[str] = None) -> Conversation:
    now = datetime.utcnow()
    conversation = Conversation(title=title or default_title(now), created_at=now, updated_at=now)
    db.add(conversation)
    db.commit()
    db.refresh(conversation)
    return conversation


def get_conversation(db: Session, conversation_id: str) -> Optional[Conversation]:
    return db.get(Conversation, conversation_id)


def get_conversations(db: Session) -> List[Conversation]:
    """Most recently updated first."""
    return db.query(Conversation).order_by(Conversation.updated_at.desc()).all()


def get_most_recent_conversation(db: Session) -> Optional[Conversation]:
    return db.query(Conversation).order_by(Conversation.updated_at.desc()).first()


def add_message(db: Session, conversation_id: str, data: MessageCreate) -> Message:
    conversation = db.get(Conversation, conversation_id)
    if not conversation:
        raise ConversationNotFoundError(conversation_id)

    now = datetime.utcnow()
    message = Message(
        conversation_id=conversation.id,
        position=len(conversation.messages),
        role=data.role,
        content=data.content,
        timestamp=now,
        meta=data.metadata.model_dump(exclude_none=True) if data.metadata else None,
    )
    conversation.messages.append(message)
    conversation.updated_at = now

    db.commit()
    db.refresh(message)
    return message


def update_conversation_title(db: Session, conversation_id: str, title: str) -> Optional[Conversation]:
    conversation = db.get(Conversation, conversation_id)
    if not conversation:
        return None
    conversation.title = title
    conversation.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(conversation)
    return conversation


def delete_conversation(db: Session, conversation_id: str) -> DeleteResult:
    conversation = db.get(Conversation, conversation_id)
    if not conversation:
        return NotFound(conversation_id)

    db.delete(conversation)
    db.commit()
    return Deleted(conversation_id)


def clear_conversation(db: Session, conversation_id: str) -> Optional[Conversation]:
    """Drop every message but keep the conversation itself."""
    conversation = db.get(Conversation, conversation_id)
    if not conversation:
        return None
    conversation.messages.clear()
    conversation.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(conversation)
    return conversation


def get_or_create_current_conversation(db: Session, today: Optional[date] = None) -> Conversation:
    """Reuse the most recent conversation if it was started today, else start a new one."""
    today = today or datetime.utcnow().date()
    recent = get_most_recent_conversation(db)
    if recent and recent.created_at.date() == today:
        return recent
    return create_conversation(db)
