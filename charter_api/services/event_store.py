"""Append-only status event store backed by SQLAlchemy."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Protocol
from uuid import UUID

from sqlalchemy import case, func, literal, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from charter_api.db.models import EntityStatusSummary, StatusChangeEvent
from charter_api.db.types import utc_now
from charter_api.services.status_errors import EventStoreError, StatusConflictError

logger = logging.getLogger(__name__)


class EventStore(Protocol):
    """Contract for the status event log of one stream."""

    stream: str

    def append(self, event: StatusChangeEvent, expected_sequence: int) -> UUID:
        """Persist ``event`` if the entity is still at ``expected_sequence``."""

    def latest_event(self, entity_id: UUID) -> StatusChangeEvent | None:
        """Chronologically latest event, ties broken by sequence."""

    def history(self, entity_id: UUID) -> list[StatusChangeEvent]:
        """All events for the entity, most recent first."""

    def last_sequence(self, entity_id: UUID) -> int:
        """Highest sequence appended for the entity (0 when none)."""

    def current_statuses(self, entity_ids: Iterable[UUID]) -> dict[UUID, str]:
        """Materialized current status for entities that have events."""


class SqlAlchemyEventStore:
    """
    Event store over the shared ``status_change_events`` table.

    Every query is scoped to ``stream``. ``append`` commits the event and the
    entity's summary row together; the summary's ``last_sequence`` acts as a
    compare-and-set version so a stale writer gets ``StatusConflictError``.
    """

    def __init__(self, db: Session, stream: str):
        self.db = db
        self.stream = stream

    def _events_for(self, entity_id: UUID):
        return select(StatusChangeEvent).where(
            StatusChangeEvent.stream == self.stream,
            StatusChangeEvent.entity_id == entity_id,
        )

    def latest_event(self, entity_id: UUID) -> StatusChangeEvent | None:
        stmt = (
            self._events_for(entity_id)
            .order_by(StatusChangeEvent.occurred_at.desc(), StatusChangeEvent.sequence.desc())
            .limit(1)
        )
        try:
            return self.db.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise EventStoreError(f"Failed to read latest event for {entity_id}") from exc

    def history(self, entity_id: UUID) -> list[StatusChangeEvent]:
        stmt = self._events_for(entity_id).order_by(
            StatusChangeEvent.occurred_at.desc(), StatusChangeEvent.sequence.desc()
        )
        try:
            return list(self.db.execute(stmt).scalars().all())
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise EventStoreError(f"Failed to read history for {entity_id}") from exc

    def last_sequence(self, entity_id: UUID) -> int:
        stmt = select(func.max(StatusChangeEvent.sequence)).where(
            StatusChangeEvent.stream == self.stream,
            StatusChangeEvent.entity_id == entity_id,
        )
        try:
            return self.db.execute(stmt).scalar() or 0
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise EventStoreError(f"Failed to read version for {entity_id}") from exc

    def current_statuses(self, entity_ids: Iterable[UUID]) -> dict[UUID, str]:
        ids = list(entity_ids)
        if not ids:
            return {}
        stmt = select(EntityStatusSummary.entity_id, EntityStatusSummary.status).where(
            EntityStatusSummary.stream == self.stream,
            EntityStatusSummary.entity_id.in_(ids),
        )
        try:
            return {row.entity_id: row.status for row in self.db.execute(stmt)}
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise EventStoreError("Failed to read status summaries") from exc

    def append(self, event: StatusChangeEvent, expected_sequence: int) -> UUID:
        event.stream = self.stream
        event.sequence = expected_sequence + 1
        if event.occurred_at is None:
            event.occurred_at = utc_now()

        try:
            self._advance_summary(event, expected_sequence)
            self.db.add(event)
            self.db.commit()
        except StatusConflictError:
            self.db.rollback()
            raise
        except IntegrityError as exc:
            # Unique (stream, entity_id, sequence) or summary primary key lost a race
            self.db.rollback()
            raise StatusConflictError(event.entity_id, expected_sequence) from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error(
                "Status event append failed: stream=%s entity_id=%s",
                self.stream,
                event.entity_id,
            )
            raise EventStoreError(f"Failed to append status event for {event.entity_id}") from exc

        return event.id

    def _advance_summary(self, event: StatusChangeEvent, expected_sequence: int) -> None:
        """Move the summary row from ``expected_sequence`` to the event's sequence."""
        occurred_at = literal(event.occurred_at, EntityStatusSummary.latest_occurred_at.type)
        is_latest = EntityStatusSummary.latest_occurred_at <= occurred_at
        result = self.db.execute(
            update(EntityStatusSummary)
            .where(
                EntityStatusSummary.stream == self.stream,
                EntityStatusSummary.entity_id == event.entity_id,
                EntityStatusSummary.last_sequence == expected_sequence,
            )
            .values(
                last_sequence=event.sequence,
                status=case((is_latest, event.to_status), else_=EntityStatusSummary.status),
                latest_occurred_at=case(
                    (is_latest, occurred_at),
                    else_=EntityStatusSummary.latest_occurred_at,
                ),
                updated_at=utc_now(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            return

        actual = self.last_sequence(event.entity_id)
        if expected_sequence != 0 or actual != 0:
            raise StatusConflictError(event.entity_id, expected_sequence, actual)

        self.db.add(
            EntityStatusSummary(
                stream=self.stream,
                entity_id=event.entity_id,
                status=event.to_status,
                last_sequence=event.sequence,
                latest_occurred_at=event.occurred_at,
            )
        )
