"""In-app message endpoints polled by the SDKs."""
import logging

from fastapi import APIRouter, Depends

from ..dependencies import get_message_store, require_api_key
from ..schemas import MarkReadResponse, MessageItem, MessageListResponse, NextMessageResponse
from ..services import MessageStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/messages", tags=["messages"], dependencies=[Depends(require_api_key)])


@router.get("/{user_id}", response_model=MessageListResponse)
async def list_messages(
    user_id: str,
    store: MessageStore = Depends(get_message_store),
):
    """Active messages for a user, oldest first."""
    messages = await store.list_active(user_id)

    return MessageListResponse(
        user_id=user_id,
        messages=[MessageItem.model_validate(message) for message in messages],
        count=len(messages),
    )


@router.get("/{user_id}/next", response_model=NextMessageResponse)
async def next_message(
    user_id: str,
    store: MessageStore = Depends(get_message_store),
):
    """Oldest active message for a user, or null."""
    message = await store.peek_oldest_active(user_id)

    return NextMessageResponse(
        user_id=user_id,
        message=MessageItem.model_validate(message) if message else None,
    )


@router.post("/{message_id}/read", response_model=MarkReadResponse)
async def mark_message_read(
    message_id: str,
    store: MessageStore = Depends(get_message_store),
):
    """Mark a message as read; 404 if absent or already read."""
    message = await store.mark_read(message_id)

    return MarkReadResponse(message_id=message.id, read_at=message.read_at)
