"""Chat service for StudyDesk.

Each conversation is addressed by a conversation id (a single "default"
conversation until users exist). The stored history is replayed to the
model on every turn.
"""

import logging
from datetime import datetime

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from sqlalchemy.orm import Session

from ..database.models import ChatMessage
from ..errors import GenerationError, ValidationError
from . import generation

logger = logging.getLogger(__name__)


DEFAULT_CONVERSATION_ID = "default"

CHAT_SYSTEM_PROMPT = """You are StudyDesk, a helpful AI study assistant. Help the student learn by:

- Explaining concepts clearly and at the right level for the student
- Breaking down complex ideas into simpler pieces
- Providing examples to illustrate your explanations
- Suggesting study strategies when they are asked for

Keep your explanations concise but thorough."""

# Persisted role -> LangChain message class. The reverse lookup from a
# reply's message type is derived from this table.
ROLE_TO_MESSAGE = {
    "user": HumanMessage,
    "assistant": AIMessage,
}
MESSAGE_TYPE_TO_ROLE = {
    message_class(content="").type: role
    for role, message_class in ROLE_TO_MESSAGE.items()
}


def get_history(
    db: Session,
    conversation_id: str = DEFAULT_CONVERSATION_ID,
) -> list[ChatMessage]:
    """Messages of a conversation, oldest first."""
    return db.query(ChatMessage).filter(
        ChatMessage.conversation_id == conversation_id,
    ).order_by(ChatMessage.created_at.asc(), ChatMessage.id.asc()).all()


def build_turns(history: list[ChatMessage], message: str) -> list[BaseMessage]:
    """Translate stored history plus the new message into model messages."""
    turns = [SystemMessage(content=CHAT_SYSTEM_PROMPT)]
    for msg in history:
        turns.append(ROLE_TO_MESSAGE[msg.role](content=msg.content))
    turns.append(HumanMessage(content=message))
    return turns


async def send_message(
    db: Session,
    message: str,
    conversation_id: str = DEFAULT_CONVERSATION_ID,
) -> ChatMessage:
    """Send a user message and store the exchange.

    The user message and the reply are committed together once the model
    has answered. If generation fails nothing is stored.
    """
    if not message or not message.strip():
        raise ValidationError("Message is required")

    history = get_history(db, conversation_id)
    user_message = ChatMessage(
        conversation_id=conversation_id,
        role="user",
        content=message,
        created_at=datetime.utcnow(),
    )

    message_type, content = await generation.converse(build_turns(history, message))

    role = MESSAGE_TYPE_TO_ROLE.get(message_type)
    if role != "assistant":
        raise GenerationError(f"Unexpected reply type from model: {message_type}")

    reply = ChatMessage(
        conversation_id=conversation_id,
        role=role,
        content=content,
        created_at=datetime.utcnow(),
    )

    db.add(user_message)
    db.add(reply)
    db.commit()
    db.refresh(reply)

    return reply


def clear_history(db: Session, conversation_id: str = DEFAULT_CONVERSATION_ID) -> int:
    """Delete every message of a conversation. Returns the number removed."""
    deleted = db.query(ChatMessage).filter(
        ChatMessage.conversation_id == conversation_id,
    ).delete(synchronize_session=False)
    db.commit()
    logger.info(f"Cleared {deleted} messages from conversation '{conversation_id}'")
    return deleted


def serialize_message(msg: ChatMessage) -> dict:
    return {
        "id": msg.id,
        "role": msg.role,
        "content": msg.content,
        "timestamp": msg.created_at.isoformat() if msg.created_at else None,
    }
