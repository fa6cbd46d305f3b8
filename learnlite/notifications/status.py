from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from learnlite.core.config import NotificationSettings
from learnlite.notifications.dispatcher import NotificationDispatcher


class NotificationStatus(BaseModel):
    """Health snapshot of the notifications dispatcher."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    active: bool
    poll_interval_ms: int = Field(alias="pollIntervalMs")
    last_run_at: Optional[datetime] = Field(default=None, alias="lastRunAt")
    pending_estimate: int = Field(default=0, alias="pendingEstimate")
    sink: str


class StatusReporter:
    """
    Read-only view over a dispatcher for health checks.
    Reads the last known values and never waits on the dispatcher.
    """

    def __init__(self, settings: NotificationSettings, dispatcher: Optional[NotificationDispatcher] = None):
        self.settings = settings
        self._dispatcher = dispatcher

    @property
    def enabled(self) -> bool:
        return self.settings.enabled and self._dispatcher is not None

    def snapshot(self) -> NotificationStatus:
        dispatcher = self._dispatcher
        if dispatcher is None:
            return NotificationStatus(
                active=False,
                poll_interval_ms=self.settings.poll_interval_ms,
                sink=self.settings.sink.value,
            )
        return NotificationStatus(
            active=dispatcher.is_active,
            poll_interval_ms=dispatcher.settings.poll_interval_ms,
            last_run_at=dispatcher.last_run_at,
            pending_estimate=dispatcher.pending_estimate,
            sink=dispatcher.sink_name,
        )
