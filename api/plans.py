from db.models.user import (
    User,
    PLAN_FREE,
    PLAN_PRO,
    PLAN_TEAM,
    SUBSCRIPTION_ACTIVE,
    SUBSCRIPTION_TRIALING,
)

UNLIMITED = -1

PLAN_LIMITS = {
    PLAN_FREE: {"monitors": 2, "email_alerts": False, "webhook_alerts": True},
    PLAN_PRO: {"monitors": 20, "email_alerts": True, "webhook_alerts": True},
    PLAN_TEAM: {"monitors": UNLIMITED, "email_alerts": True, "webhook_alerts": True},
}


def effective_plan(user: User) -> str:
    """Paid tiers only count while the subscription is live."""
    if user.plan in PLAN_LIMITS and user.plan != PLAN_FREE:
        if user.subscription_status in (SUBSCRIPTION_ACTIVE, SUBSCRIPTION_TRIALING):
            return user.plan
    return PLAN_FREE


def plan_allows(plan: str, capability: str) -> bool:
    return bool(PLAN_LIMITS.get(plan, PLAN_LIMITS[PLAN_FREE])[capability])


def monitor_quota(plan: str) -> int:
    return PLAN_LIMITS.get(plan, PLAN_LIMITS[PLAN_FREE])["monitors"]
