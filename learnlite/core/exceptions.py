class NotificationError(Exception):
    """Base class for notification dispatcher failures."""


class ConfigurationError(NotificationError):
    """Invalid settings or an unusable sink. Prevents the dispatcher from starting."""


class StoreError(NotificationError):
    """The outbox store could not complete a query or a transaction."""


class ClaimViolationError(StoreError):
    """An id was marked processed outside of the unit of work that claimed it."""


class DeliveryError(NotificationError):
    """A sink failed to deliver an event."""
