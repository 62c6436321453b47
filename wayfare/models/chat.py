"""
Chat Models

Conversation owns its messages and participants (cascade on delete).
last_message_id is a back-reference used for list sorting, not ownership.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, Text, DateTime, Boolean, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import relationship

from ..database import Base


class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    is_group = Column(Boolean, nullable=False, default=False)
    name = Column(String(200), nullable=True)

    # "<user_a>:<user_b>" sorted, only for direct conversations
    direct_key = Column(String(80), nullable=True, unique=True)

    last_message_id = Column(String(36), nullable=True)
    last_message_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    participants = relationship(
        "ConversationParticipant",
        back_populates="conversation",
        cascade="all, delete-orphan",
    )
    messages = relationship(
        "Message",
        back_populates="conversation",
        cascade="all, delete-orphan",
        order_by="Message.created_at",
    )

    __table_args__ = (
        Index("ix_conversation_last_message_at", "last_message_at"),
    )

    @property
    def participant_ids(self):
        return [p.user_id for p in self.participants]

    def __repr__(self):
        return f"<Conversation {self.id} group={self.is_group}>"


class ConversationParticipant(Base):
    __tablename__ = "conversation_participants"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    conversation_id = Column(String(36), ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(36), nullable=False, index=True)
    joined_at = Column(DateTime, default=datetime.utcnow)

    conversation = relationship("Conversation", back_populates="participants")

    __table_args__ = (
        UniqueConstraint("conversation_id", "user_id", name="uq_participant_conversation_user"),
    )


class Message(Base):
    __tablename__ = "messages"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    conversation_id = Column(String(36), ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False)
    sender_id = Column(String(36), nullable=False)
    text = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    conversation = relationship("Conversation", back_populates="messages")

    __table_args__ = (
        Index("ix_message_conversation_created", "conversation_id", "created_at"),
    )

    def to_event(self) -> dict:
        """Wire shape shared by the REST read path and the relay broadcast"""
        return {
            "id": self.id,
            "conversationId": self.conversation_id,
            "senderId": self.sender_id,
            "text": self.text,
            "timestamp": self.created_at.isoformat(),
        }

    def __repr__(self):
        return f"<Message {self.id} in {self.conversation_id}>"
