# learnlite/models/__init__.py
from .base import Base
from .outbox import OutboxEvent

# Export all models
__all__ = [
    "Base",
    "OutboxEvent",
]
