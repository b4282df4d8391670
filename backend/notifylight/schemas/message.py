"""In-app message schemas."""
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from ..database import utcnow
from .base import CamelModel


class MessageItem(CamelModel):
    """In-app message as returned to the SDKs."""
    id: str
    title: str
    message: str
    created_at: datetime
    status: str  # active, read


class MessageListResponse(CamelModel):
    """Active messages for a user, oldest first."""
    success: bool = True
    user_id: str
    messages: List[MessageItem]
    count: int
    timestamp: datetime = Field(default_factory=utcnow)


class NextMessageResponse(CamelModel):
    """Oldest active message for a user, if any."""
    success: bool = True
    user_id: str
    message: Optional[MessageItem] = None


class MarkReadResponse(CamelModel):
    """Response after marking a message as read."""
    success: bool = True
    message: str = "Message marked as read"
    message_id: str
    read_at: datetime
    timestamp: datetime = Field(default_factory=utcnow)
