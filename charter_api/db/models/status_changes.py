"""Status change event log and its materialized projection."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Index, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from charter_api.db.base import Base
from charter_api.db.types import utc_now


class StatusChangeEvent(Base):
    """
    Append-only record of one status transition.

    Rows are never updated or deleted; an entity's current status is the
    ``to_status`` of its latest event. ``stream`` scopes the row to one
    status-tracking feature so unrelated subsystems can share the table.

    ``sequence`` is a per-entity version: the unique constraint turns two
    concurrent appends from the same observed version into a conflict.
    """

    __tablename__ = "status_change_events"
    __table_args__ = (
        UniqueConstraint("stream", "entity_id", "sequence", name="uq_status_events_sequence"),
        Index("idx_status_events_entity", "stream", "entity_id", "occurred_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    stream: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[uuid.UUID] = mapped_column(nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)

    from_status: Mapped[str] = mapped_column(String(50), nullable=False)
    to_status: Mapped[str] = mapped_column(String(50), nullable=False)
    actor: Mapped[str] = mapped_column(String(255), nullable=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    occurred_at: Mapped[datetime] = mapped_column(
        default=utc_now, server_default=func.now(), nullable=False
    )

    # Request provenance
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(500), nullable=True)


class EntityStatusSummary(Base):
    """
    Latest projected status per entity, written alongside every event append.

    Aggregation queries (histograms, status filters, staleness) read this
    table instead of replaying each entity's events.
    """

    __tablename__ = "entity_status_summaries"
    __table_args__ = (Index("idx_status_summaries_stream_status", "stream", "status"),)

    stream: Mapped[str] = mapped_column(String(50), primary_key=True)
    entity_id: Mapped[uuid.UUID] = mapped_column(primary_key=True)
    status: Mapped[str] = mapped_column(String(50), nullable=False)
    last_sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    latest_occurred_at: Mapped[datetime] = mapped_column(nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=utc_now, onupdate=utc_now, nullable=False
    )
