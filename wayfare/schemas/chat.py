from pydantic import BaseModel, ConfigDict, Field
from typing import Annotated, Optional, List
from datetime import datetime


class ConversationCreate(BaseModel):
    current_user_id: str = Field(..., min_length=1, max_length=36)
    participant_ids: List[Annotated[str, Field(min_length=1, max_length=36)]] = Field(..., min_length=1, description="At least one other participant")
    is_group: bool = False
    name: Optional[str] = Field(None, max_length=200)


class ConversationResponse(BaseModel):
    id: str
    is_group: bool
    name: Optional[str] = None
    participant_ids: List[str]
    last_message_id: Optional[str] = None
    last_message_at: Optional[datetime] = None
    created_at: datetime


class MessageCreate(BaseModel):
    sender_id: str = Field(..., min_length=1, max_length=36)
    text: str = Field(..., min_length=1)


class MessageResponse(BaseModel):
    """Same shape the relay broadcasts as new-message"""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    conversation_id: str = Field(..., alias="conversationId")
    sender_id: str = Field(..., alias="senderId")
    text: str
    timestamp: datetime
