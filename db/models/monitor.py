from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from db.base import Base

# Monitor status constants
STATUS_PENDING = "pending"
STATUS_HEALTHY = "healthy"
STATUS_LATE = "late"
STATUS_DOWN = "down"


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every datetime column is stored in."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Monitor(Base):
    __tablename__ = "monitors"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    name = Column(String, index=True, nullable=False)
    token = Column(String, unique=True, index=True, nullable=False)
    expected_interval = Column(Integer, nullable=False)  # seconds
    grace_period = Column(Integer, nullable=False, default=0)  # seconds
    status = Column(String, nullable=False, default=STATUS_PENDING)
    last_ping = Column(DateTime, nullable=True)
    alert_email = Column(String, nullable=True)
    webhook_url = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    # Bumped on every (status, last_ping) write, guards conditional updates
    version = Column(Integer, nullable=False, default=0)

    owner = relationship("User", back_populates="monitors")
    pings = relationship(
        "PingEvent",
        back_populates="monitor",
        cascade="all, delete-orphan",
        order_by="PingEvent.received_at",
    )
