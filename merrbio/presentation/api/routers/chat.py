from typing import List

from fastapi import APIRouter, Depends, status

from ....application.services.chat_service import ChatService
from ....core.dependencies import get_chat_service
from ....domain.models import Identity
from ..dependencies import get_current_identity
from ..schemas.chat import (
    ChatMessageResponse,
    ConversationCreateRequest,
    ConversationResponse,
    MessageSendRequest,
    ReadReceiptResponse,
)

router = APIRouter(prefix="/chat", tags=["Chat"])


@router.post("/conversations", response_model=ConversationResponse)
async def start_conversation(
    payload: ConversationCreateRequest,
    identity: Identity = Depends(get_current_identity),
    service: ChatService = Depends(get_chat_service),
) -> ConversationResponse:
    conversation = service.start_conversation(
        identity,
        payload.recipient_id,
        initial_message=payload.initial_message,
        product_id=payload.product_id,
    )
    return ConversationResponse.model_validate(conversation)


@router.get("/conversations", response_model=List[ConversationResponse])
async def list_conversations(
    identity: Identity = Depends(get_current_identity),
    service: ChatService = Depends(get_chat_service),
) -> List[ConversationResponse]:
    return [ConversationResponse.model_validate(item) for item in service.get_user_conversations(identity)]


@router.get("/conversations/{conversation_id}", response_model=ConversationResponse)
async def get_conversation(
    conversation_id: int,
    identity: Identity = Depends(get_current_identity),
    service: ChatService = Depends(get_chat_service),
) -> ConversationResponse:
    return ConversationResponse.model_validate(service.get_conversation(identity, conversation_id))


@router.delete("/conversations/{conversation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def deactivate_conversation(
    conversation_id: int,
    identity: Identity = Depends(get_current_identity),
    service: ChatService = Depends(get_chat_service),
) -> None:
    service.deactivate_conversation(identity, conversation_id)


@router.post("/conversations/{conversation_id}/read", response_model=ReadReceiptResponse)
async def mark_as_read(
    conversation_id: int,
    identity: Identity = Depends(get_current_identity),
    service: ChatService = Depends(get_chat_service),
) -> ReadReceiptResponse:
    updated = service.mark_conversation_as_read(identity, conversation_id)
    return ReadReceiptResponse(conversation_id=conversation_id, marked_read=updated)


@router.post(
    "/conversations/{conversation_id}/messages",
    response_model=ChatMessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def send_message(
    conversation_id: int,
    payload: MessageSendRequest,
    identity: Identity = Depends(get_current_identity),
    service: ChatService = Depends(get_chat_service),
) -> ChatMessageResponse:
    return ChatMessageResponse.model_validate(service.send_message(identity, conversation_id, payload.content))
