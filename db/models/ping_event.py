from sqlalchemy import Column, Integer, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from db.base import Base
from db.models.monitor import utcnow


class PingEvent(Base):
    __tablename__ = "ping_events"
    # Serves both the newest-ping lookup and the per-monitor history listing
    __table_args__ = (Index("ix_ping_events_monitor_received", "monitor_id", "received_at"),)

    id = Column(Integer, primary_key=True)
    monitor_id = Column(
        Integer, ForeignKey("monitors.id", ondelete="CASCADE"), nullable=False
    )
    received_at = Column(DateTime, nullable=False, default=utcnow)

    monitor = relationship("Monitor", back_populates="pings")
