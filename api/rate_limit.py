from slowapi import Limiter
from slowapi.util import get_remote_address
import os

DEFAULT_LIMITS = ["100/minute"]
PING_RATE_LIMIT = os.getenv("PING_RATE_LIMIT", "120/minute")

limiter = Limiter(key_func=get_remote_address, default_limits=DEFAULT_LIMITS)
