import logging
import os
from enum import Enum
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from learnlite.core.exceptions import ConfigurationError

log = logging.getLogger(__name__)

# Database Configuration
# Uses default credentials for local Docker Compose setup
DB_URL = os.getenv("DATABASE_URL", "postgresql+asyncpg://user:password@db:5432/learnlite_dev")

# Application Metadata
PROJECT_NAME = "LearnLite Backend"
VERSION = "1.2.0"

LOG_LEVEL = os.getenv("LOG_LEVEL", "info")

_TRUTHY = {"1", "true", "yes", "on"}


class SinkKind(str, Enum):
    STREAM = "stream"  # Operator console, not durable
    FILE = "file"  # Append-only JSONL file


class NotificationSettings(BaseModel):
    """
    Notification dispatcher settings, resolved once when the process starts.
    """
    enabled: bool = False
    sink: SinkKind = SinkKind.STREAM
    file_path: Path = Field(default_factory=lambda: Path.cwd() / "var" / "notifications.log")
    poll_interval_ms: int = Field(5000, gt=0)
    batch_size: int = Field(50, gt=0)

    model_config = {"frozen": True}

    @field_validator("sink", mode="before")
    @classmethod
    def _fallback_to_stream(cls, value):
        if isinstance(value, SinkKind):
            return value
        selector = str(value or "").strip().lower()
        if selector == "console":
            return SinkKind.STREAM
        try:
            return SinkKind(selector)
        except ValueError:
            log.warning(f"Unknown notifications sink '{value}', falling back to '{SinkKind.STREAM.value}'.")
            return SinkKind.STREAM

    @field_validator("file_path", mode="after")
    @classmethod
    def _absolute_path(cls, value: Path) -> Path:
        return value if value.is_absolute() else Path.cwd() / value

    @property
    def poll_interval(self) -> float:
        """Poll interval in seconds."""
        return self.poll_interval_ms / 1000

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "NotificationSettings":
        env = os.environ if environ is None else environ
        values = {
            "enabled": env.get("NOTIFICATIONS_ENABLED", "false").strip().lower() in _TRUTHY,
            "sink": env.get("NOTIFICATIONS_SINK", SinkKind.STREAM.value),
            "poll_interval_ms": _parse_int(env, "NOTIFICATIONS_POLL_INTERVAL_MS", 5000),
            "batch_size": _parse_int(env, "NOTIFICATIONS_BATCH_SIZE", 50),
        }
        if env.get("NOTIFICATIONS_FILE"):
            values["file_path"] = Path(env["NOTIFICATIONS_FILE"])
        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid notifications configuration: {e}") from e


def _parse_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"Invalid {key} value: {raw!r}. Must be a positive integer.") from e
