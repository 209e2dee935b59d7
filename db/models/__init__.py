from .monitor import Monitor
from .ping_event import PingEvent
from .user import User
from .settings import Settings

__all__ = ["Monitor", "PingEvent", "User", "Settings"]
