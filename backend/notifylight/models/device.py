"""Device model - push tokens registered by mobile clients."""
import uuid

from sqlalchemy import Column, String, DateTime, CheckConstraint

from ..database import Base, utcnow


class Device(Base):
    """Registered device, unique by token."""

    __tablename__ = "devices"
    __table_args__ = (
        CheckConstraint("platform IN ('ios', 'android')", name="ck_devices_platform"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    token = Column(String, unique=True, nullable=False)
    platform = Column(String, nullable=False, index=True)  # ios, android
    user_id = Column("userId", String, key="user_id", nullable=False, index=True)
    created_at = Column("createdAt", DateTime, key="created_at", nullable=False, default=utcnow)
    updated_at = Column("updatedAt", DateTime, key="updated_at", nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<Device {self.platform} {self.token[:16]}... user={self.user_id}>"
