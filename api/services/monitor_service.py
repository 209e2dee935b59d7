from db.repositories.monitor_repository import MonitorRepository
from db.repositories.user_repository import UserRepository
from db.repositories.settings_repository import SettingsRepository
from db.models import Monitor, PingEvent
from db.models.monitor import STATUS_PENDING
from api.plans import UNLIMITED, effective_plan, monitor_quota
from api.services.errors import ValidationError, NotFoundError, PlanLimitError
from api.services.liveness import generate_token
from typing import Optional
import logging

logger = logging.getLogger(__name__)

DEFAULT_APP_URL = "http://localhost:8000"
TOKEN_ATTEMPTS = 5
PING_HISTORY_LIMIT = 20
# Largest value the INTEGER columns hold on every backend
MAX_SECONDS = 2**31 - 1
UPDATABLE_FIELDS = ("name", "expected_interval", "grace_period", "alert_email", "webhook_url")
CLEARABLE_FIELDS = ("alert_email", "webhook_url")


def validate_monitor_config(
    name: Optional[str], expected_interval: Optional[float], grace_period: Optional[float]
) -> None:
    if name is not None and not name.strip():
        raise ValidationError("Monitor name cannot be empty")
    if expected_interval is not None and expected_interval <= 0:
        raise ValidationError("Expected interval must be greater than 0 seconds")
    if expected_interval is not None and expected_interval > MAX_SECONDS:
        raise ValidationError(f"Expected interval cannot exceed {MAX_SECONDS} seconds")
    if grace_period is not None and grace_period < 0:
        raise ValidationError("Grace period cannot be negative")
    if grace_period is not None and grace_period > MAX_SECONDS:
        raise ValidationError(f"Grace period cannot exceed {MAX_SECONDS} seconds")


class MonitorService:
    """Owner-facing registry of monitors. Every path is scoped by user id."""

    def __init__(
        self,
        monitor_repo: MonitorRepository,
        user_repo: UserRepository,
        settings_repo: Optional[SettingsRepository] = None,
    ):
        self.monitor_repo = monitor_repo
        self.user_repo = user_repo
        self.settings_repo = settings_repo

    def create_monitor(
        self,
        user_id: int,
        name: str,
        expected_interval: int,
        grace_period: int = 0,
        alert_email: Optional[str] = None,
        webhook_url: Optional[str] = None,
    ) -> Monitor:
        if name is None:
            raise ValidationError("Monitor name cannot be empty")
        validate_monitor_config(name, expected_interval, grace_period)
        self._check_quota(user_id)

        monitor = Monitor(
            user_id=user_id,
            name=name.strip(),
            token=self._allocate_token(),
            expected_interval=expected_interval,
            grace_period=grace_period,
            status=STATUS_PENDING,
            last_ping=None,
            alert_email=alert_email,
            webhook_url=webhook_url,
            version=0,
        )
        monitor = self.monitor_repo.create(monitor)
        logger.info(f"Created monitor {monitor.id} ({monitor.name}) for user {user_id}")
        return monitor

    def _check_quota(self, user_id: int) -> None:
        user = self.user_repo.get_user_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        quota = monitor_quota(effective_plan(user))
        if quota == UNLIMITED:
            return
        if self.monitor_repo.count_by_user(user_id) >= quota:
            logger.info(f"User {user_id} reached the monitor quota of {quota}")
            raise PlanLimitError(
                f"Your plan allows {quota} monitors. Upgrade to add more."
            )

    def _allocate_token(self) -> str:
        for _ in range(TOKEN_ATTEMPTS):
            token = generate_token()
            if not self.monitor_repo.token_exists(token):
                return token
            logger.warning("Ping token collision, drawing a new one")
        raise RuntimeError("Could not allocate a unique ping token")

    def update_monitor(self, monitor_id: int, user_id: int, **changes) -> Monitor:
        """
        Apply only the fields given. Alert targets given as None are cleared;
        None for any other field leaves it unchanged.
        """
        monitor = self.get_monitor(monitor_id, user_id)
        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown monitor fields: {', '.join(sorted(unknown))}")
        changes = {
            key: value
            for key, value in changes.items()
            if value is not None or key in CLEARABLE_FIELDS
        }
        validate_monitor_config(
            changes.get("name"), changes.get("expected_interval"), changes.get("grace_period")
        )
        if "name" in changes:
            changes["name"] = changes["name"].strip()
        # Status is not touched here: the next sweep or ping settles it
        return self.monitor_repo.update(monitor, changes)

    def get_monitor(self, monitor_id: int, user_id: int) -> Monitor:
        monitor = self.monitor_repo.get_by_id(monitor_id, user_id)
        if not monitor:
            raise NotFoundError("Monitor not found or not authorized")
        return monitor

    def list_monitors(self, user_id: int) -> list[Monitor]:
        return self.monitor_repo.list_by_user(user_id)

    def list_pings(
        self, monitor_id: int, user_id: int, limit: int = PING_HISTORY_LIMIT
    ) -> list[PingEvent]:
        monitor = self.get_monitor(monitor_id, user_id)
        return self.monitor_repo.list_ping_events(monitor.id, limit=limit)

    def count_pings(self, monitor_id: int, user_id: int) -> int:
        monitor = self.get_monitor(monitor_id, user_id)
        return self.monitor_repo.count_ping_events(monitor.id)

    def delete_monitor(self, monitor_id: int, user_id: int) -> None:
        try:
            self.monitor_repo.delete(monitor_id, user_id)
        except ValueError as e:
            raise NotFoundError(str(e))
        logger.info(f"Deleted monitor {monitor_id} and its ping history for user {user_id}")

    def ping_url(self, monitor: Monitor) -> str:
        base_url = DEFAULT_APP_URL
        if self.settings_repo:
            base_url = self.settings_repo.get_setting("APP_URL", DEFAULT_APP_URL)
        return f"{base_url.rstrip('/')}/ping/{monitor.token}"
