from db.models.settings import Settings
from sqlalchemy.orm import Session
from typing import Optional
import logging
import os

logger = logging.getLogger(__name__)

SMTP_KEYS = ["SMTP_HOST", "SMTP_PORT", "SMTP_USER", "SMTP_PASSWORD", "SENDER_EMAIL"]


class SettingsRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_setting(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Environment variable first, then the stored row, then `default`."""
        env_value = os.getenv(key)
        if env_value is not None:
            return env_value

        setting = self.db.query(Settings).filter(Settings.key == key).first()
        if setting and setting.value is not None:
            return setting.value
        return default

    def get_int(self, key: str, default: int) -> int:
        raw = self.get_setting(key)
        if raw is None or raw == "":
            return default
        try:
            return int(raw)
        except ValueError:
            logger.warning("Setting %s=%r is not an integer, using %s", key, raw, default)
            return default

    def set_setting(self, key: str, value: Optional[str], is_secret: bool = False):
        setting = self.db.query(Settings).filter(Settings.key == key).first()
        if setting:
            setting.value = value
            setting.is_secret = is_secret
        else:
            setting = Settings(key=key, value=value, is_secret=is_secret)
            self.db.add(setting)
        self.db.commit()

    def is_smtp_configured(self) -> bool:
        return all(self.get_setting(key) for key in SMTP_KEYS)
