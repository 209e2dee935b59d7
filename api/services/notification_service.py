from typing import Optional
from api.plans import plan_allows
from api.services.email_service import EmailService, REQUIRED_KEYS
from api.services.errors import NotificationDeliveryError
from api.services.sweeper import AlertRequest
from db.models.monitor import STATUS_DOWN, utcnow
from db.repositories.settings_repository import SettingsRepository
import logging
import os
import requests

logger = logging.getLogger(__name__)

WEBHOOK_TIMEOUT_SECONDS = 5


def format_interval(seconds: int) -> str:
    if seconds % 86400 == 0:
        return f"{seconds // 86400}d"
    if seconds % 3600 == 0:
        return f"{seconds // 3600}h"
    if seconds % 60 == 0:
        return f"{seconds // 60}m"
    return f"{seconds}s"


class NotificationService:
    """
    Best-effort alert fan-out. `notify` never raises; every channel failure
    is logged and reflected in the return value only.
    """

    def __init__(self, settings_repo: Optional[SettingsRepository] = None):
        self.settings_repo = settings_repo
        self.app_url = self._get_setting("APP_URL") or "http://localhost:8000"
        self.email_service = None
        self._init_email_service()

    def _get_setting(self, key: str) -> Optional[str]:
        if self.settings_repo:
            return self.settings_repo.get_setting(key)
        return os.getenv(key)

    def _init_email_service(self):
        smtp_config = {key: self._get_setting(key) for key in REQUIRED_KEYS}
        smtp_config["SENDER_NAME"] = self._get_setting("SENDER_NAME")
        smtp_config["SMTP_USE_TLS"] = self._get_setting("SMTP_USE_TLS")

        if not all(smtp_config.get(k) for k in REQUIRED_KEYS):
            logger.debug("SMTP not configured, email alerts disabled")
            return
        try:
            self.email_service = EmailService(smtp_config)
            logger.info("Email service initialized successfully")
        except ValueError as e:
            logger.warning(f"Failed to initialize email service: {e}")

    def notify(self, alert: AlertRequest) -> bool:
        attempted = 0
        delivered = 0
        channels = []
        if alert.alert_email and plan_allows(alert.plan, "email_alerts"):
            channels.append(self.send_alert_email)
        elif alert.alert_email:
            logger.info(f"Plan {alert.plan} has no email alerts, skipping monitor {alert.monitor_id}")
        if alert.webhook_url and plan_allows(alert.plan, "webhook_alerts"):
            channels.append(self.send_webhook_alert)

        for channel in channels:
            attempted += 1
            try:
                channel(alert)
                delivered += 1
            except NotificationDeliveryError as e:
                logger.error(f"Alert delivery failed for monitor {alert.monitor_id}: {e}")

        if not attempted:
            logger.info(f"No alert channel for monitor {alert.monitor_id} ({alert.status})")
        return attempted == delivered

    def send_alert_email(self, alert: AlertRequest) -> None:
        if not self.email_service:
            raise NotificationDeliveryError("Email service not configured")

        headline = "is down" if alert.status == STATUS_DOWN else "is running late"
        last_ping = alert.last_ping.isoformat() if alert.last_ping else "Never"
        subject = f"PingHook Alert: {alert.monitor_name} {headline}"
        html_content = f"""
        <h2>Monitor Alert</h2>
        <p>The monitor <strong>{alert.monitor_name}</strong> {headline}.</p>
        <ul>
            <li><strong>Status:</strong> {alert.previous_status} &rarr; {alert.status}</li>
            <li><strong>Expected Interval:</strong> {format_interval(alert.expected_interval)}</li>
            <li><strong>Grace Period:</strong> {format_interval(alert.grace_period)}</li>
            <li><strong>Last Ping:</strong> {last_ping}</li>
            <li><strong>Alert Time:</strong> {utcnow().isoformat()}</li>
        </ul>
        <p>Please check your cron job or scheduled task to ensure it's running correctly.</p>
        <p><a href="{self.app_url}/api/monitors/{alert.monitor_id}">View Monitor</a></p>
        """
        text_content = (
            f"{alert.monitor_name} {headline} ({alert.previous_status} -> {alert.status}).\n"
            f"Expected every {format_interval(alert.expected_interval)}, last ping: {last_ping}."
        )
        success, message = self.email_service.send_alert(
            to_email=alert.alert_email,
            subject=subject,
            html_content=html_content,
            text_content=text_content,
        )
        if not success:
            raise NotificationDeliveryError(message)
        logger.info(f"Email alert sent for monitor {alert.monitor_id}")

    def send_webhook_alert(self, alert: AlertRequest) -> None:
        payload = {
            "event": f"monitor_{alert.status}",
            "monitor_id": alert.monitor_id,
            "monitor_name": alert.monitor_name,
            "status": alert.status,
            "previous_status": alert.previous_status,
            "expected_interval_seconds": alert.expected_interval,
            "grace_period_seconds": alert.grace_period,
            "last_ping": alert.last_ping.isoformat() if alert.last_ping else None,
            "sent_at": utcnow().isoformat(),
        }
        try:
            response = requests.post(
                alert.webhook_url, json=payload, timeout=WEBHOOK_TIMEOUT_SECONDS
            )
        except requests.RequestException as e:
            raise NotificationDeliveryError(f"Webhook request failed: {e}")
        if not 200 <= response.status_code < 300:
            raise NotificationDeliveryError(
                f"Webhook answered {response.status_code}: {response.text[:200]}"
            )
        logger.info(f"Webhook alert sent for monitor {alert.monitor_id}")

