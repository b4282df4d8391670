"""In-app message store - per-user FIFO with an active/read lifecycle."""
import logging
from typing import Dict, List, Optional

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import async_sessionmaker

from ..database import session_scope, utcnow
from ..errors import NotFoundError, ValidationError
from ..models import InAppMessage

logger = logging.getLogger(__name__)

ACTIVE = "active"
READ = "read"


class MessageStore:
    """Persistent queue of in-app messages."""

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    async def create_message(self, message_id: str, title: str, message: str, user_id: str) -> InAppMessage:
        """Insert a new active message for a user."""
        missing = [
            name for name, value in (
                ("id", message_id), ("title", title), ("message", message), ("userId", user_id),
            ) if not value
        ]
        if missing:
            raise ValidationError([f"{name} is required" for name in missing])

        record = InAppMessage(
            id=message_id,
            title=title,
            message=message,
            user_id=user_id,
            status=ACTIVE,
            created_at=utcnow(),
            read_at=None,
        )
        async with session_scope(self._session_factory) as session:
            session.add(record)
            await session.commit()

        logger.info(f"In-app message created for user {user_id}: {title}")
        return record

    def _active_query(self, user_id: str):
        return (
            select(InAppMessage)
            .where(InAppMessage.user_id == user_id, InAppMessage.status == ACTIVE)
            .order_by(InAppMessage.created_at.asc(), InAppMessage.id.asc())
        )

    async def list_active(self, user_id: str) -> List[InAppMessage]:
        """Active messages for a user, oldest first."""
        async with session_scope(self._session_factory) as session:
            result = await session.execute(self._active_query(user_id))
            return list(result.scalars().all())

    async def peek_oldest_active(self, user_id: str) -> Optional[InAppMessage]:
        """The single oldest active message, for one-at-a-time display."""
        async with session_scope(self._session_factory) as session:
            result = await session.execute(self._active_query(user_id).limit(1))
            return result.scalar_one_or_none()

    async def mark_read(self, message_id: str) -> InAppMessage:
        """Transition a message from active to read.

        The update only matches active rows, so a second call for the same
        message raises NotFoundError instead of consuming it twice.
        """
        now = utcnow()
        async with session_scope(self._session_factory) as session:
            result = await session.execute(
                update(InAppMessage)
                .where(InAppMessage.id == message_id, InAppMessage.status == ACTIVE)
                .values(status=READ, read_at=now)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise NotFoundError(f"Message {message_id} not found or already read")
            await session.commit()

            record = await session.get(InAppMessage, message_id)

        logger.info(f"Message {message_id} marked as read")
        return record

    async def stats(self) -> Dict[str, int]:
        """Message counts by status."""
        async with session_scope(self._session_factory) as session:
            result = await session.execute(
                select(InAppMessage.status, func.count(InAppMessage.id)).group_by(InAppMessage.status)
            )
            counts = {ACTIVE: 0, READ: 0}
            for status, count in result.all():
                counts[status] = count

        counts["total"] = counts[ACTIVE] + counts[READ]
        return counts
