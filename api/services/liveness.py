"""
Pure liveness rules shared by the ping ingestor and the sweeper.

Nothing in here touches the database or the clock; callers pass `now`.
"""
from datetime import datetime, timedelta
from typing import Optional, Union
import secrets

from db.models.monitor import STATUS_PENDING, STATUS_HEALTHY, STATUS_LATE, STATUS_DOWN

# No 0/O, 1/l/I: tokens end up in URLs people copy by hand
TOKEN_ALPHABET = "23456789abcdefghijkmnopqrstuvwxyzABCDEFGHJKLMNPQRSTUVWXYZ"
TOKEN_LENGTH = 12

SEVERITY = {
    STATUS_PENDING: 0,
    STATUS_HEALTHY: 0,
    STATUS_LATE: 1,
    STATUS_DOWN: 2,
}

Instant = Union[datetime, int, float]


def compute_status(
    last_ping: Optional[Instant],
    expected_interval: float,
    grace_period: float,
    now: Instant,
) -> str:
    """
    Derive a monitor's status from its last ping.

    Bands are closed on the upper end: elapsed == interval is still healthy,
    elapsed == interval + grace is still late.
    """
    if last_ping is None:
        return STATUS_PENDING
    elapsed = now - last_ping
    if isinstance(elapsed, timedelta):
        elapsed = elapsed.total_seconds()
    if elapsed <= expected_interval:
        return STATUS_HEALTHY
    if elapsed <= expected_interval + grace_period:
        return STATUS_LATE
    return STATUS_DOWN


def severity(status: str) -> int:
    return SEVERITY.get(status, 0)


def is_alert_transition(old_status: str, new_status: str) -> bool:
    """True when a monitor moves into late/down from something less severe."""
    if new_status not in (STATUS_LATE, STATUS_DOWN):
        return False
    return severity(new_status) > severity(old_status)


def generate_token(length: int = TOKEN_LENGTH) -> str:
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))
