"""NotifyLight - self-hosted push and in-app notification backend."""

__version__ = "1.0.0"
