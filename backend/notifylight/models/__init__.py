"""Database models."""
from .device import Device
from .in_app_message import InAppMessage
from .delivery_log import DeliveryLog

__all__ = ["Device", "InAppMessage", "DeliveryLog"]
