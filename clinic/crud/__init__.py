from .appointment import appointment
from .user import user

__all__ = ["appointment", "user"]
