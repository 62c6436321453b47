"""
Chat Service

Conversation and message persistence shared by the REST read path and the
realtime relay. Direct conversations are unique per participant pair.
"""

import logging
from datetime import datetime
from typing import Callable, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import get_settings
from ..database import SessionLocal
from ..models.chat import Conversation, ConversationParticipant, Message
from ..utils.exceptions import WayfareError, NotFoundError, ValidationError, PersistenceError

logger = logging.getLogger(__name__)


def direct_key_for(user_a: str, user_b: str) -> str:
    return ":".join(sorted((user_a, user_b)))


def _unique(ids: Iterable[str]) -> List[str]:
    seen = []
    for user_id in ids:
        user_id = (user_id or "").strip()
        if user_id and user_id not in seen:
            seen.append(user_id)
    return seen


class ChatService:
    def __init__(self, db: Session, max_length: Optional[int] = None):
        self.db = db
        self.max_length = max_length or get_settings().message_max_length

    def get_conversation(self, conversation_id: str) -> Conversation:
        conversation = self.db.get(Conversation, conversation_id)
        if not conversation:
            raise NotFoundError("conversation", conversation_id)
        return conversation

    def get_or_create_conversation(
        self,
        creator_id: str,
        participant_ids: List[str],
        is_group: bool = False,
        name: Optional[str] = None
    ) -> Conversation:
        """
        Return the existing direct conversation for a pair, or create one.

        Group conversations (or more than two participants) are always new.
        """
        members = _unique([creator_id, *participant_ids])
        if len(members) < 2:
            raise ValidationError("A conversation needs at least two distinct participants")

        is_group = is_group or len(members) > 2
        direct_key = None if is_group else direct_key_for(*members)

        if direct_key:
            existing = self.db.query(Conversation).filter(Conversation.direct_key == direct_key).first()
            if existing:
                return existing

        conversation = Conversation(is_group=is_group, name=name if is_group else None, direct_key=direct_key)
        conversation.participants = [ConversationParticipant(user_id=user_id) for user_id in members]
        self.db.add(conversation)

        try:
            self.db.commit()
        except IntegrityError:
            # Another request created the same direct conversation first
            self.db.rollback()
            existing = self.db.query(Conversation).filter(Conversation.direct_key == direct_key).first()
            if existing:
                return existing
            raise

        self.db.refresh(conversation)
        logger.info(f"Conversation {conversation.id} created with {len(members)} participants")
        return conversation

    def list_conversations(self, user_id: str) -> List[Conversation]:
        """Conversations of a user, most recent activity first"""
        activity = func.coalesce(Conversation.last_message_at, Conversation.created_at)
        return (
            self.db.query(Conversation)
            .join(ConversationParticipant, ConversationParticipant.conversation_id == Conversation.id)
            .filter(ConversationParticipant.user_id == user_id)
            .order_by(activity.desc(), Conversation.id)
            .all()
        )

    def get_messages(
        self,
        conversation_id: str,
        limit: int = 50,
        before: Optional[datetime] = None
    ) -> List[Message]:
        """Latest `limit` messages (optionally older than `before`), oldest first"""
        self.get_conversation(conversation_id)

        query = self.db.query(Message).filter(Message.conversation_id == conversation_id)
        if before is not None:
            query = query.filter(Message.created_at < before)

        newest_first = query.order_by(Message.created_at.desc(), Message.id.desc()).limit(limit).all()
        return list(reversed(newest_first))

    def append_message(self, conversation_id: str, sender_id: str, text: str) -> Message:
        if not text or not text.strip():
            raise ValidationError("Message text cannot be empty")
        if len(text) > self.max_length:
            raise ValidationError(f"Message text exceeds {self.max_length} characters")

        conversation = self.get_conversation(conversation_id)
        if sender_id not in conversation.participant_ids:
            raise ValidationError("Sender is not a participant of this conversation")

        try:
            message = Message(
                conversation_id=conversation_id,
                sender_id=sender_id,
                text=text,
                created_at=datetime.utcnow()
            )
            self.db.add(message)
            self.db.flush()

            self.touch_conversation(conversation, message)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(f"Failed to store message in conversation {conversation_id}")
            raise

        self.db.refresh(message)
        return message

    def touch_conversation(self, conversation: Conversation, message: Message) -> None:
        conversation.last_message_id = message.id
        conversation.last_message_at = message.created_at

    def delete_conversation(self, conversation_id: str) -> None:
        conversation = self.get_conversation(conversation_id)
        self.db.delete(conversation)
        self.db.commit()
        logger.info(f"Conversation {conversation_id} deleted")


def persist_message(
    conversation_id: str,
    sender_id: str,
    text: str,
    session_factory: Callable[[], Session] = SessionLocal
) -> dict:
    """
    Relay persistence hook: store a message in its own session and return
    the new-message event payload.

    Raises:
        PersistenceError: on any failure, with a client-safe message
    """
    db = session_factory()
    try:
        message = ChatService(db).append_message(conversation_id, sender_id, text)
        return message.to_event()
    except WayfareError as e:
        raise PersistenceError(e.message, error_code=e.error_code) from e
    except SQLAlchemyError as e:
        raise PersistenceError("Failed to save message") from e
    finally:
        db.close()
