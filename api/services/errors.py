class PingHookError(Exception):
    def __init__(self, detail):
        super().__init__(detail)
        self.detail = detail

    def __str__(self):
        return str(self.detail)


class ValidationError(PingHookError):
    """Bad monitor configuration. Surfaced to the user, never retried."""


class NotFoundError(PingHookError):
    """Unknown ping token, or a monitor the caller does not own."""


class PlanLimitError(PingHookError):
    """The owner's plan does not allow the requested action."""


class PersistenceConflict(PingHookError):
    """A guarded write lost its race twice in a row."""


class NotificationDeliveryError(PingHookError):
    """An alert channel could not be reached. Logged, never propagated."""
