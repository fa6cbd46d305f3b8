from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import JSON, BigInteger, Boolean, CheckConstraint, DateTime, Index, Integer, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from learnlite.models.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OutboxEvent(Base):
    """
    The Outbox table stores events atomically with the business transaction.
    This is the core of the Transactional Outbox Pattern.
    """
    __tablename__ = "outbox_events"

    # SQLite only auto-increments a column declared exactly INTEGER
    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer(), "sqlite"), primary_key=True, autoincrement=True
    )
    topic: Mapped[str] = mapped_column(String(100), nullable=False)  # e.g., 'enrollment.created'
    payload: Mapped[Any] = mapped_column(JSON().with_variant(JSONB(), "postgresql"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    processed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    processed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "(processed AND processed_at IS NOT NULL) OR (NOT processed AND processed_at IS NULL)",
            name="ck_outbox_events_processed_at",
        ),
        Index("ix_outbox_events_processed", "processed"),
        Index("ix_outbox_events_topic_created_at", "topic", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<OutboxEvent id={self.id} topic={self.topic!r} processed={self.processed}>"
