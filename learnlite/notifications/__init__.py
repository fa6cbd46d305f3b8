# learnlite/notifications/__init__.py
from sqlalchemy.ext.asyncio import async_sessionmaker

from learnlite.core.config import NotificationSettings
from .dispatcher import DispatcherState, NotificationDispatcher
from .event_store import ClaimedBatch, ClaimedEvent, OutboxEventStore
from .sinks import FileSink, NotificationRecord, NotificationSink, StreamSink, build_sink
from .status import NotificationStatus, StatusReporter


def build_dispatcher(settings: NotificationSettings, session_factory: async_sessionmaker) -> NotificationDispatcher:
    """Wires the store and the configured sink into a dispatcher owned by the caller."""
    return NotificationDispatcher(settings, OutboxEventStore(session_factory), build_sink(settings))


__all__ = [
    "ClaimedBatch",
    "ClaimedEvent",
    "DispatcherState",
    "FileSink",
    "NotificationDispatcher",
    "NotificationRecord",
    "NotificationSink",
    "NotificationStatus",
    "OutboxEventStore",
    "StatusReporter",
    "StreamSink",
    "build_dispatcher",
    "build_sink",
]
