from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import ObjectDeletedError
from db.models import Monitor
from db.models.monitor import STATUS_HEALTHY, utcnow
from db.repositories.monitor_repository import MonitorRepository, identity_of
from api.services.errors import NotFoundError, PersistenceConflict
import logging

logger = logging.getLogger(__name__)

# One retry of the read-compute-write cycle after a lost race
WRITE_ATTEMPTS = 2


@dataclass
class PingResult:
    monitor_id: int
    received_at: datetime
    status_applied: bool


def apply_ping(
    monitor_repo: MonitorRepository, monitor: Monitor, received_at: datetime
) -> Monitor:
    """
    Mark a monitor healthy as of `received_at`, whatever its current status.

    last_ping never moves backwards, so a late-arriving older ping still
    counts as proof of life without rewinding the clock.
    """
    monitor_id = identity_of(monitor)
    for _ in range(WRITE_ATTEMPTS):
        try:
            current_last_ping = monitor.last_ping
            version = monitor.version
        except ObjectDeletedError:
            raise NotFoundError("Cron monitor not found")
        last_ping = received_at
        if current_last_ping is not None and current_last_ping > received_at:
            last_ping = current_last_ping
        if monitor_repo.compare_and_set_state(monitor_id, version, STATUS_HEALTHY, last_ping):
            return monitor
        logger.info(f"Monitor {monitor_id} changed underneath a ping, re-reading")
        monitor = monitor_repo.reload(monitor)
        if monitor is None:
            raise NotFoundError("Cron monitor not found")
    raise PersistenceConflict(f"Could not record ping state for monitor {monitor_id}")


class PingService:
    """The public, token-keyed write path. No authentication: the token is the secret."""

    def __init__(self, monitor_repo: MonitorRepository):
        self.monitor_repo = monitor_repo

    def ingest(self, token: str, now: Optional[datetime] = None) -> PingResult:
        received_at = now or utcnow()
        monitor = self.monitor_repo.get_by_token(token)
        if not monitor:
            # Expected client error, not worth an error-level entry
            logger.info(f"Ping for unknown token {token[:4]}...")
            raise NotFoundError("Cron monitor not found")

        monitor_id = monitor.id
        # The event is durable before the status write is attempted
        self.monitor_repo.add_ping_event(monitor_id, received_at)

        try:
            apply_ping(self.monitor_repo, monitor, received_at)
        except PersistenceConflict as e:
            logger.warning(f"{e}; the next sweep will reconcile it")
            return PingResult(monitor_id, received_at, status_applied=False)
        except SQLAlchemyError as e:
            self.monitor_repo.rollback()
            logger.error(
                f"Failed to update status for monitor {monitor_id} after recording ping: {e}"
            )
            return PingResult(monitor_id, received_at, status_applied=False)

        logger.info(f"Ping received for monitor {monitor_id}")
        return PingResult(monitor_id, received_at, status_applied=True)
