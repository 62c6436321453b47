"""
Chat Router

REST read/write path for conversations. Live delivery goes through the
relay; clients catch up on missed messages here.
"""
from fastapi import APIRouter, Depends, Query, Request, status
from typing import List, Optional
from datetime import datetime

from ..models.chat import Conversation
from ..schemas.chat import ConversationCreate, ConversationResponse, MessageCreate, MessageResponse
from ..services.chat_service import ChatService
from ..utils.dependencies import get_chat_service
from ..utils.rate_limiter import limiter, get_rate_limit

router = APIRouter(prefix="/api/chat", tags=["Chat"])


def to_conversation_response(conversation: Conversation) -> ConversationResponse:
    return ConversationResponse(
        id=conversation.id,
        is_group=conversation.is_group,
        name=conversation.name,
        participant_ids=conversation.participant_ids,
        last_message_id=conversation.last_message_id,
        last_message_at=conversation.last_message_at,
        created_at=conversation.created_at,
    )


@router.post("/conversations", response_model=ConversationResponse)
async def create_conversation(data: ConversationCreate, chat: ChatService = Depends(get_chat_service)):
    """Returns the existing direct conversation when one already exists for the pair"""
    conversation = chat.get_or_create_conversation(
        data.current_user_id, data.participant_ids, data.is_group, data.name
    )
    return to_conversation_response(conversation)


@router.get("/conversations", response_model=List[ConversationResponse])
async def list_conversations(user_id: str, chat: ChatService = Depends(get_chat_service)):
    return [to_conversation_response(c) for c in chat.list_conversations(user_id)]


@router.get("/conversations/{conversation_id}/messages", response_model=List[MessageResponse], response_model_by_alias=True)
async def get_messages(
    conversation_id: str,
    limit: int = Query(50, ge=1, le=200),
    before: Optional[datetime] = None,
    chat: ChatService = Depends(get_chat_service)
):
    messages = chat.get_messages(conversation_id, limit=limit, before=before)
    return [MessageResponse(**m.to_event()) for m in messages]


@router.post(
    "/conversations/{conversation_id}/messages",
    response_model=MessageResponse,
    response_model_by_alias=True,
    status_code=status.HTTP_201_CREATED
)
@limiter.limit(get_rate_limit("chat_write"))
async def post_message(
    request: Request,
    conversation_id: str,
    data: MessageCreate,
    chat: ChatService = Depends(get_chat_service)
):
    """Stores without live delivery; the relay is the realtime path"""
    message = chat.append_message(conversation_id, data.sender_id, data.text)
    return MessageResponse(**message.to_event())


@router.delete("/conversations/{conversation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_conversation(conversation_id: str, chat: ChatService = Depends(get_chat_service)):
    chat.delete_conversation(conversation_id)
