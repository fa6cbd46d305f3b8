import asyncio
import json
import logging
import sys
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, TextIO

from pydantic import BaseModel

from learnlite.core.config import NotificationSettings, SinkKind
from learnlite.core.exceptions import ConfigurationError, DeliveryError
from learnlite.notifications.event_store import ClaimedEvent

log = logging.getLogger(__name__)


class NotificationRecord(BaseModel):
    """One line of the notifications file. Field order is part of the format."""
    timestamp: datetime
    id: int
    topic: str
    payload: Any
    created_at: datetime

    @classmethod
    def from_event(cls, event: ClaimedEvent) -> "NotificationRecord":
        return cls(
            timestamp=datetime.now(timezone.utc),
            id=event.id,
            topic=event.topic,
            payload=event.payload,
            created_at=event.created_at,
        )


class NotificationSink(ABC):
    """Delivery target for claimed events. Failures must raise DeliveryError, never be swallowed."""

    kind: SinkKind

    @property
    def name(self) -> str:
        return self.kind.value

    def prepare(self) -> None:
        """Validates the sink before the dispatcher starts. Raises ConfigurationError."""

    @abstractmethod
    async def deliver(self, event: ClaimedEvent) -> None:
        ...


class StreamSink(NotificationSink):
    """Writes one line per event to an operator-visible stream (stdout by default)."""

    kind = SinkKind.STREAM

    def __init__(self, stream: Optional[TextIO] = None):
        self._stream = stream

    async def deliver(self, event: ClaimedEvent) -> None:
        stream = self._stream or sys.stdout
        timestamp = datetime.now(timezone.utc).isoformat()
        line = f"[{timestamp}] {event.topic} #{event.id}: {json.dumps(event.payload, default=str)}\n"
        try:
            stream.write(line)
            stream.flush()
        except (OSError, ValueError) as e:
            raise DeliveryError(f"Stream delivery failed for event {event.id}: {e}") from e


class FileSink(NotificationSink):
    """
    Appends one JSON object per event to a newline-delimited file.
    The file is only ever opened in append mode, so concurrent writers never clobber each other.
    """

    kind = SinkKind.FILE

    def __init__(self, path: Path):
        self.path = Path(path)

    def prepare(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # Opening in append mode proves the path is writable without touching existing lines
            with self.path.open("a", encoding="utf-8"):
                pass
        except OSError as e:
            raise ConfigurationError(f"Notifications file {self.path} is not writable: {e}") from e

    async def deliver(self, event: ClaimedEvent) -> None:
        line = NotificationRecord.from_event(event).model_dump_json() + "\n"
        try:
            await asyncio.to_thread(self._append, line)
        except OSError as e:
            raise DeliveryError(f"File delivery failed for event {event.id}: {e}") from e

    def _append(self, line: str) -> None:
        with self.path.open("a", encoding="utf-8") as fh:
            fh.write(line)


def build_sink(settings: NotificationSettings) -> NotificationSink:
    """Returns the single sink variant selected for this process."""
    if settings.sink is SinkKind.FILE:
        return FileSink(settings.file_path)
    return StreamSink()
