"""
Periodic liveness evaluation.

The sweeper is the only thing that moves a monitor towards late/down and the
only source of failure alerts. It never moves a monitor back towards healthy:
only a ping proves recovery.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import ObjectDeletedError
from api.plans import effective_plan
from api.services.errors import NotFoundError, PersistenceConflict
from api.services.liveness import compute_status, is_alert_transition, severity
from api.services.ping_service import WRITE_ATTEMPTS, apply_ping
from db.models import Monitor
from db.models.monitor import utcnow
from db.repositories.monitor_repository import MonitorRepository, identity_of
import logging

logger = logging.getLogger(__name__)


@dataclass
class AlertRequest:
    monitor_id: int
    monitor_name: str
    user_id: int
    plan: str
    previous_status: str
    status: str
    last_ping: Optional[datetime]
    expected_interval: int
    grace_period: int
    alert_email: Optional[str] = None
    webhook_url: Optional[str] = None


@dataclass
class SweepReport:
    started_at: datetime
    checked: int = 0
    transitioned: int = 0
    alerts: int = 0
    conflicts: int = 0
    reconciled: int = 0
    errors: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "started_at": self.started_at.isoformat(),
            "checked": self.checked,
            "transitioned": self.transitioned,
            "alerts": self.alerts,
            "conflicts": self.conflicts,
            "reconciled": self.reconciled,
        }


class LivenessSweeper:
    def __init__(
        self,
        monitor_repo: MonitorRepository,
        dispatch: Optional[Callable[[AlertRequest], None]] = None,
    ):
        self.monitor_repo = monitor_repo
        self.dispatch = dispatch

    def sweep(self, now: Optional[datetime] = None) -> SweepReport:
        now = now or utcnow()
        report = SweepReport(started_at=now)
        latest_pings = self.monitor_repo.unapplied_ping_times()

        for monitor in self.monitor_repo.list_for_sweep():
            report.checked += 1
            monitor_id = identity_of(monitor)
            try:
                alert = self._evaluate(
                    monitor_id, monitor, latest_pings.get(monitor_id), now, report
                )
            except ObjectDeletedError:
                logger.info(f"Monitor {monitor_id} was deleted during the sweep")
                continue
            except PersistenceConflict as e:
                report.conflicts += 1
                logger.warning(f"Sweep skipped monitor {monitor_id}: {e}")
                continue
            except SQLAlchemyError as e:
                # Next cycle recomputes from absolute timestamps
                self.monitor_repo.rollback()
                report.errors.append(f"monitor {monitor_id}: {e}")
                logger.error(f"Sweep failed to evaluate monitor {monitor_id}: {e}")
                continue
            if alert:
                self._dispatch(alert)
                report.alerts += 1

        logger.info(
            f"Sweep done: {report.checked} checked, {report.transitioned} transitioned, "
            f"{report.alerts} alerts, {report.conflicts} conflicts"
        )
        return report

    def _evaluate(
        self,
        monitor_id: int,
        monitor: Monitor,
        latest_ping: Optional[datetime],
        now: datetime,
        report: SweepReport,
    ) -> Optional[AlertRequest]:
        if latest_ping is not None and (
            monitor.last_ping is None or latest_ping > monitor.last_ping
        ):
            # A recorded ping whose status write never landed
            logger.info(f"Reconciling monitor {monitor_id} with its ping history")
            try:
                monitor = apply_ping(self.monitor_repo, monitor, latest_ping)
            except NotFoundError:
                return None
            report.reconciled += 1

        for _ in range(WRITE_ATTEMPTS):
            previous = monitor.status
            last_ping = monitor.last_ping
            new_status = compute_status(
                last_ping, monitor.expected_interval, monitor.grace_period, now
            )
            if severity(new_status) <= severity(previous):
                return None

            alert = None
            if is_alert_transition(previous, new_status):
                alert = self._build_alert(monitor, previous, new_status)
            if self.monitor_repo.compare_and_set_state(
                monitor_id, monitor.version, new_status, last_ping
            ):
                report.transitioned += 1
                logger.info(f"Monitor {monitor_id} went {previous} -> {new_status}")
                return alert

            # A ping (or another sweep) got there first; decide again on fresh state
            monitor = self.monitor_repo.reload(monitor)
            if monitor is None:
                return None
        raise PersistenceConflict(f"Monitor {monitor_id} kept changing during the sweep")

    def _build_alert(self, monitor: Monitor, previous: str, new_status: str) -> AlertRequest:
        return AlertRequest(
            monitor_id=monitor.id,
            monitor_name=monitor.name,
            user_id=monitor.user_id,
            plan=effective_plan(monitor.owner),
            previous_status=previous,
            status=new_status,
            last_ping=monitor.last_ping,
            expected_interval=monitor.expected_interval,
            grace_period=monitor.grace_period,
            alert_email=monitor.alert_email,
            webhook_url=monitor.webhook_url,
        )

    def _dispatch(self, alert: AlertRequest) -> None:
        if self.dispatch is None:
            logger.warning(f"No alert dispatcher configured, dropping alert for monitor {alert.monitor_id}")
            return
        try:
            self.dispatch(alert)
        except Exception as e:
            logger.error(f"Failed to dispatch alert for monitor {alert.monitor_id}: {e}")
