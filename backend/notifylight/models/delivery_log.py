"""DeliveryLog model - append-only record of push attempts."""
import uuid

from sqlalchemy import Column, String, DateTime, CheckConstraint

from ..database import Base, utcnow


class DeliveryLog(Base):
    """Outcome of delivering one notification to one device."""

    __tablename__ = "delivery_logs"
    __table_args__ = (
        CheckConstraint("status IN ('sent', 'failed')", name="ck_delivery_logs_status"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    notification_id = Column("notificationId", String, key="notification_id", nullable=False, index=True)
    device_token = Column("deviceToken", String, key="device_token", nullable=False)
    status = Column(String, nullable=False)  # sent, failed
    error_message = Column("errorMessage", String, key="error_message", nullable=True)
    timestamp = Column(DateTime, nullable=False, default=utcnow, index=True)
