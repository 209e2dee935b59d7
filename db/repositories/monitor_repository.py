from datetime import datetime
from typing import Optional
from sqlalchemy import func, inspect, or_
from sqlalchemy.orm import Session, joinedload
from db.models import Monitor, PingEvent, User


def identity_of(monitor: Monitor) -> int:
    """Primary key of a persisted monitor, without touching expired attributes."""
    identity = inspect(monitor).identity
    if identity is None:
        return monitor.id
    return identity[0]


class MonitorRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(self, monitor: Monitor) -> Monitor:
        self.db.add(monitor)
        self.db.commit()
        self.db.refresh(monitor)
        return monitor

    def get_by_id(self, monitor_id: int, user_id: int) -> Monitor | None:
        return (
            self.db.query(Monitor)
            .filter(Monitor.id == monitor_id, Monitor.user_id == user_id)
            .first()
        )

    def get_by_token(self, token: str) -> Monitor | None:
        return self.db.query(Monitor).filter(Monitor.token == token).first()

    def token_exists(self, token: str) -> bool:
        return (
            self.db.query(Monitor.id).filter(Monitor.token == token).first()
            is not None
        )

    def list_by_user(self, user_id: int) -> list[Monitor]:
        return (
            self.db.query(Monitor)
            .filter(Monitor.user_id == user_id)
            .order_by(Monitor.id)
            .all()
        )

    def count_by_user(self, user_id: int) -> int:
        return self.db.query(Monitor).filter(Monitor.user_id == user_id).count()

    def list_for_sweep(self) -> list[Monitor]:
        """Every monitor whose owner account is still active, owners preloaded."""
        return (
            self.db.query(Monitor)
            .join(User, Monitor.user_id == User.id)
            .filter(User.is_active.is_(True))
            .options(joinedload(Monitor.owner))
            .order_by(Monitor.id)
            .all()
        )

    def unapplied_ping_times(self) -> dict[int, datetime]:
        """Newest recorded ping per monitor, only where it is newer than last_ping."""
        newest = func.max(PingEvent.received_at)
        rows = (
            self.db.query(PingEvent.monitor_id, newest)
            .join(Monitor, Monitor.id == PingEvent.monitor_id)
            .group_by(PingEvent.monitor_id, Monitor.last_ping)
            .having(or_(Monitor.last_ping.is_(None), newest > Monitor.last_ping))
            .all()
        )
        return {monitor_id: received_at for monitor_id, received_at in rows}

    def update(self, monitor: Monitor, changes: dict) -> Monitor:
        for key, value in changes.items():
            if hasattr(monitor, key):
                setattr(monitor, key, value)
        self.db.commit()
        self.db.refresh(monitor)
        return monitor

    def add_ping_event(self, monitor_id: int, received_at: datetime) -> PingEvent:
        event = PingEvent(monitor_id=monitor_id, received_at=received_at)
        self.db.add(event)
        self.db.commit()
        self.db.refresh(event)
        return event

    def list_ping_events(self, monitor_id: int, limit: int = 20) -> list[PingEvent]:
        return (
            self.db.query(PingEvent)
            .filter(PingEvent.monitor_id == monitor_id)
            .order_by(PingEvent.received_at.desc(), PingEvent.id.desc())
            .limit(limit)
            .all()
        )

    def count_ping_events(self, monitor_id: int) -> int:
        return self.db.query(PingEvent).filter(PingEvent.monitor_id == monitor_id).count()

    def compare_and_set_state(
        self,
        monitor_id: int,
        expected_version: int,
        status: str,
        last_ping: Optional[datetime],
    ) -> bool:
        """
        Write (status, last_ping) as one unit, only if nobody else wrote the
        row since `expected_version` was read. Returns False when the guard
        did not hold and nothing was written.
        """
        updated = (
            self.db.query(Monitor)
            .filter(Monitor.id == monitor_id, Monitor.version == expected_version)
            .update(
                {
                    Monitor.status: status,
                    Monitor.last_ping: last_ping,
                    Monitor.version: expected_version + 1,
                },
                synchronize_session=False,
            )
        )
        self.db.commit()
        return updated == 1

    def reload(self, monitor: Monitor) -> Monitor | None:
        """Re-read a monitor from the database, None if it was deleted meanwhile."""
        # Read the key without loading: an expired, deleted row cannot refresh
        monitor_id = identity_of(monitor)
        if monitor in self.db:
            self.db.expire(monitor)
        return self.db.query(Monitor).filter(Monitor.id == monitor_id).first()

    def delete(self, monitor_id: int, user_id: int) -> None:
        monitor = self.get_by_id(monitor_id, user_id)
        if not monitor:
            raise ValueError("Monitor not found or not authorized")
        self.db.delete(monitor)
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
