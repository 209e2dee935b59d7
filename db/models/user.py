from sqlalchemy import Column, Integer, String, Boolean
from sqlalchemy.orm import relationship
from db.base import Base

# Subscription status constants
SUBSCRIPTION_ACTIVE = "active"
SUBSCRIPTION_INACTIVE = "inactive"
SUBSCRIPTION_TRIALING = "trialing"

# Plan tiers
PLAN_FREE = "free"
PLAN_PRO = "pro"
PLAN_TEAM = "team"


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True)
    email = Column(String, unique=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    plan = Column(String, nullable=False, default=PLAN_FREE)
    subscription_status = Column(String, default=SUBSCRIPTION_INACTIVE)
    # Deactivated accounts keep their data but drop out of the liveness sweep
    is_active = Column(Boolean, nullable=False, default=True)

    monitors = relationship(
        "Monitor", back_populates="owner", cascade="all, delete-orphan"
    )
