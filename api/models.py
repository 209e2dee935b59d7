from pydantic import BaseModel, EmailStr, field_validator, HttpUrl, constr
from datetime import datetime
from typing import Optional
import re

DEFAULT_GRACE_PERIOD = 300


def _strip_tags(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    # Remove any HTML/script tags
    return re.sub(r"<[^>]+>", "", value).strip()


class MonitorCreate(BaseModel):
    name: constr(max_length=200)  # type: ignore
    expected_interval: int  # seconds
    grace_period: int = DEFAULT_GRACE_PERIOD  # seconds
    alert_email: Optional[EmailStr] = None
    webhook_url: Optional[HttpUrl] = None

    @field_validator("name")
    @classmethod
    def sanitize_name(cls, name):
        return _strip_tags(name)


class MonitorUpdate(BaseModel):
    name: Optional[constr(max_length=200)] = None  # type: ignore
    expected_interval: Optional[int] = None
    grace_period: Optional[int] = None
    alert_email: Optional[EmailStr] = None
    webhook_url: Optional[HttpUrl] = None

    @field_validator("name")
    @classmethod
    def sanitize_name(cls, name):
        return _strip_tags(name)


class MonitorResponse(BaseModel):
    id: int
    name: str
    token: str
    ping_url: str
    expected_interval: int
    grace_period: int
    status: str
    last_ping: Optional[datetime]
    alert_email: Optional[str]
    webhook_url: Optional[str]
    created_at: Optional[datetime]


class PingEventResponse(BaseModel):
    id: int
    received_at: datetime


class PingHistoryResponse(BaseModel):
    total: int
    pings: list[PingEventResponse]


class PingResponse(BaseModel):
    success: bool
    message: str
    timestamp: str


class UserResponse(BaseModel):
    id: int
    email: str
    plan: str
