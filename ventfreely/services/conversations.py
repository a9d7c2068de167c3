import logging
from datetime import timedelta
from typing import List, Optional, Tuple
from sqlalchemy.orm import Session

from ventfreely.core.utils import isoformat, utcnow
from ventfreely.db.models.conversation import Conversation, ConversationMessage

logger = logging.getLogger(__name__)

ACTIVE_WINDOW_MINUTES = 5


def save_exchange(
    db: Session,
    user_id: str,
    user_message: str,
    assistant_message: str,
    summary: Optional[str] = None,
) -> Conversation:
    """Stores the latest exchange on the user's current conversation, opening one if needed."""
    now = utcnow()
    conversation = (
        db.query(Conversation)
        .filter(Conversation.user_id == user_id, Conversation.is_deleted.is_(False))
        .order_by(Conversation.created_at.desc(), Conversation.id.desc())
        .first()
    )

    if conversation is None:
        conversation = Conversation(user_id=user_id, status="active", created_at=now)
        db.add(conversation)

    conversation.last_user_message = user_message
    conversation.last_assistant_message = assistant_message
    conversation.last_active_at = now
    conversation.updated_at = now
    if summary:
        conversation.summary = summary

    conversation.messages.append(ConversationMessage(user_id=user_id, role="user", content=user_message))
    conversation.messages.append(ConversationMessage(user_id=user_id, role="assistant", content=assistant_message))

    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    return conversation


def get_active_history(db: Session, user_id: str) -> Tuple[Optional[int], List[dict]]:
    cutoff = utcnow() - timedelta(minutes=ACTIVE_WINDOW_MINUTES)

    active = (
        db.query(Conversation)
        .filter(
            Conversation.user_id == user_id,
            Conversation.is_deleted.is_(False),
            Conversation.status == "active",
            Conversation.archived_at.is_(None),
            Conversation.last_active_at >= cutoff,
        )
        .order_by(Conversation.last_active_at.desc())
        .first()
    )
    if active is None:
        return None, []

    messages = (
        db.query(ConversationMessage)
        .filter(ConversationMessage.user_id == user_id, ConversationMessage.conversation_id == active.id)
        .order_by(ConversationMessage.created_at.asc(), ConversationMessage.id.asc())
        .all()
    )
    return active.id, [
        {"id": m.id, "role": m.role, "content": m.content, "created_at": isoformat(m.created_at)}
        for m in messages
    ]


def clear_conversations(db: Session, user_id: str) -> int:
    db.query(ConversationMessage).filter(ConversationMessage.user_id == user_id).delete()
    count = db.query(Conversation).filter(Conversation.user_id == user_id).delete()
    db.commit()
    return count
