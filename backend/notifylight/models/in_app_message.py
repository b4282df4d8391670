"""InAppMessage model - per-user messages polled by the SDKs."""
from sqlalchemy import Column, String, DateTime, CheckConstraint

from ..database import Base, utcnow


class InAppMessage(Base):
    """Message shown inside the app; active until explicitly marked read."""

    __tablename__ = "in_app_messages"
    __table_args__ = (
        CheckConstraint("status IN ('active', 'read')", name="ck_in_app_messages_status"),
    )

    id = Column(String, primary_key=True)
    title = Column(String, nullable=False)
    message = Column(String, nullable=False)
    user_id = Column("userId", String, key="user_id", nullable=False, index=True)
    status = Column(String, nullable=False, default="active", index=True)  # active, read
    created_at = Column("createdAt", DateTime, key="created_at", nullable=False, default=utcnow, index=True)
    read_at = Column("readAt", DateTime, key="read_at", nullable=True)  # set iff status == read
