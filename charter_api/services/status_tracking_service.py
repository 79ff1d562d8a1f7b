"""Status tracking engine shared by quotes and contacts.

Status lives in an append-only event log. A workflow describes one entity
type (its statuses, transition table, default and early stages) and the
engine applies the same rules to every type.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from charter_api.core.config import settings
from charter_api.core.status_rules import TransitionTable
from charter_api.core.structured_logging import build_log_context
from charter_api.db.models import EntityStatusSummary, StatusChangeEvent
from charter_api.db.types import utc_now
from charter_api.services.entity_repository import EntityRepository
from charter_api.services.event_store import EventStore, SqlAlchemyEventStore
from charter_api.services.status_errors import (
    EntityNotFoundError,
    EventStoreError,
    InvalidTransitionError,
    StatusConflictError,
    StatusTrackingError,
)
from charter_api.services.status_projection import ProjectionEngine

logger = logging.getLogger(__name__)

__all__ = [
    "BulkFailure",
    "BulkStatusResult",
    "EntityNotFoundError",
    "EntityWithStatus",
    "EventStoreError",
    "InvalidTransitionError",
    "StatusConflictError",
    "StatusTrackingEngine",
    "StatusTrackingError",
    "StatusWorkflow",
]


@dataclass(frozen=True)
class StatusWorkflow:
    """Static configuration of one tracked entity type."""

    entity_type: str
    stream: str
    statuses: type[Enum]
    transitions: TransitionTable
    default_status: str
    early_statuses: frozenset[str]
    model: type[Any]


@dataclass
class EntityWithStatus:
    entity: Any
    current_status: str
    history: list[StatusChangeEvent] = field(default_factory=list)


@dataclass(frozen=True)
class BulkFailure:
    entity_id: UUID
    reason: str


@dataclass
class BulkStatusResult:
    """Outcome of a bulk update: appended events plus per-entity failures."""

    succeeded: list[StatusChangeEvent] = field(default_factory=list)
    failed: list[BulkFailure] = field(default_factory=list)

    @property
    def updated_count(self) -> int:
        return len(self.succeeded)

    @property
    def failed_count(self) -> int:
        return len(self.failed)


def _status_value(status: str | Enum) -> str:
    return status.value if isinstance(status, Enum) else status


class StatusTrackingEngine:
    """Apply a workflow's transition rules on top of the event store."""

    def __init__(
        self,
        workflow: StatusWorkflow,
        store_factory: Callable[[Session, str], EventStore] = SqlAlchemyEventStore,
    ):
        self.workflow = workflow
        self._store_factory = store_factory

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    def store(self, db: Session) -> EventStore:
        return self._store_factory(db, self.workflow.stream)

    def projection(self, db: Session) -> ProjectionEngine:
        return ProjectionEngine(self.store(db), self.workflow.default_status)

    def repository(self, db: Session) -> EntityRepository:
        return EntityRepository(db, self.workflow.model)

    def _require_known_status(self, status: str | Enum) -> str:
        value = _status_value(status)
        if value not in self.workflow.transitions.statuses:
            raise ValueError(f"Unknown {self.workflow.entity_type} status: {value}")
        return value

    def _log_context(self, entity_id: UUID | None = None, actor: str | None = None) -> dict:
        return build_log_context(
            entity_type=self.workflow.entity_type,
            entity_id=str(entity_id) if entity_id else None,
            actor=actor,
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_current_status(self, db: Session, entity_id: UUID) -> str:
        return self.projection(db).current_status(entity_id)

    def get_history(self, db: Session, entity_id: UUID) -> list[StatusChangeEvent]:
        return self.store(db).history(entity_id)

    def get_available_actions(self, status: str | Enum) -> list[str]:
        return self.workflow.transitions.allowed_from(status)

    def get_entity_with_status(self, db: Session, entity_id: UUID) -> EntityWithStatus:
        entity = self.repository(db).get(entity_id)
        if entity is None:
            raise EntityNotFoundError(self.workflow.entity_type, entity_id)
        return EntityWithStatus(
            entity=entity,
            current_status=self.get_current_status(db, entity_id),
            history=self.get_history(db, entity_id),
        )

    def list_by_status(
        self,
        db: Session,
        status: str | Enum | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[EntityWithStatus], int]:
        """
        Entities in ``status`` (or all when None), newest first, with total count.

        Entities without events are in the default status.
        """
        model = self.workflow.model
        summary_join = and_(
            EntityStatusSummary.stream == self.workflow.stream,
            EntityStatusSummary.entity_id == model.id,
        )
        stmt = select(model, EntityStatusSummary.status).outerjoin(
            EntityStatusSummary, summary_join
        )
        count_stmt = select(func.count()).select_from(model).outerjoin(
            EntityStatusSummary, summary_join
        )

        if status is not None:
            value = self._require_known_status(status)
            condition = EntityStatusSummary.status == value
            if value == self.workflow.default_status:
                condition = or_(condition, EntityStatusSummary.status.is_(None))
            stmt = stmt.where(condition)
            count_stmt = count_stmt.where(condition)

        total = db.scalar(count_stmt) or 0
        rows = db.execute(
            stmt.order_by(model.created_at.desc()).offset(offset).limit(limit)
        ).all()

        store = self.store(db)
        items = [
            EntityWithStatus(
                entity=entity,
                current_status=current or self.workflow.default_status,
                history=store.history(entity.id),
            )
            for entity, current in rows
        ]
        return items, total

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def update_status(
        self,
        db: Session,
        entity_id: UUID,
        new_status: str | Enum,
        actor: str,
        note: str | None = None,
        *,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> StatusChangeEvent:
        """
        Move an entity to ``new_status`` and record the change.

        Raises:
            EntityNotFoundError: entity does not exist
            InvalidTransitionError: ``new_status`` is not reachable
            StatusConflictError: another writer changed the entity first
            EventStoreError: the append failed
        """
        target = self._require_known_status(new_status)
        repo = self.repository(db)
        entity = repo.get(entity_id)
        if entity is None:
            raise EntityNotFoundError(self.workflow.entity_type, entity_id)

        store = self.store(db)
        # Version read first so a write landing after the status read still conflicts
        expected_sequence = store.last_sequence(entity_id)
        current = ProjectionEngine(store, self.workflow.default_status).current_status(entity_id)
        if not self.workflow.transitions.is_valid_transition(current, target):
            raise InvalidTransitionError(
                current, target, self.workflow.transitions.allowed_from(current)
            )

        event = StatusChangeEvent(
            entity_id=entity_id,
            from_status=current,
            to_status=target,
            actor=actor,
            note=note,
            occurred_at=utc_now(),
            ip_address=ip_address,
            user_agent=user_agent,
        )
        # Committed together with the event
        repo.touch(entity)
        store.append(event, expected_sequence)

        logger.info(
            "Status changed: %s %s -> %s",
            self.workflow.entity_type,
            current,
            target,
            extra=self._log_context(entity_id, actor),
        )
        return event

    def bulk_update_status(
        self,
        db: Session,
        entity_ids: Iterable[UUID],
        new_status: str | Enum,
        actor: str,
        note: str | None = None,
        *,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> BulkStatusResult:
        """
        Apply one target status to many entities, one at a time.

        A failure on one entity is recorded and never stops the rest.
        """
        target = self._require_known_status(new_status)
        result = BulkStatusResult()

        for entity_id in entity_ids:
            try:
                event = self.update_status(
                    db,
                    entity_id,
                    target,
                    actor,
                    note,
                    ip_address=ip_address,
                    user_agent=user_agent,
                )
            except StatusTrackingError as exc:
                logger.warning(
                    "Bulk status update skipped %s: %s",
                    self.workflow.entity_type,
                    exc,
                    extra=self._log_context(entity_id, actor),
                )
                result.failed.append(BulkFailure(entity_id=entity_id, reason=str(exc)))
            else:
                result.succeeded.append(event)

        logger.info(
            "Bulk status update to %s: %d updated, %d failed",
            target,
            result.updated_count,
            result.failed_count,
            extra=self._log_context(actor=actor),
        )
        return result

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    def find_stale(self, db: Session, threshold_days: int | None = None) -> list[EntityWithStatus]:
        """
        Entities older than ``threshold_days`` that are still in an early stage.

        Oldest first. Each result carries its full history.
        """
        days = settings.STALE_THRESHOLD_DAYS if threshold_days is None else threshold_days
        cutoff = utc_now() - timedelta(days=days)

        candidates = self.repository(db).list_created_before(cutoff)
        statuses = self.projection(db).current_statuses(entity.id for entity in candidates)

        store = self.store(db)
        stale: list[EntityWithStatus] = []
        for entity in candidates:
            current = statuses[entity.id]
            if current not in self.workflow.early_statuses:
                continue
            try:
                history = store.history(entity.id)
            except EventStoreError:
                logger.exception(
                    "Skipping stale check for %s",
                    self.workflow.entity_type,
                    extra=self._log_context(entity.id),
                )
                continue
            stale.append(EntityWithStatus(entity=entity, current_status=current, history=history))
        return stale

    def status_histogram(self, db: Session) -> dict[str, int]:
        """Count of entities per status. Every status is present, zeros included."""
        histogram = {status: 0 for status in self.workflow.transitions.statuses}
        model = self.workflow.model

        stmt = (
            select(EntityStatusSummary.status, func.count())
            .join(model, model.id == EntityStatusSummary.entity_id)
            .where(EntityStatusSummary.stream == self.workflow.stream)
            .group_by(EntityStatusSummary.status)
        )
        try:
            rows = db.execute(stmt).all()
            total = self.repository(db).count()
        except SQLAlchemyError as exc:
            db.rollback()
            raise EventStoreError(
                f"Failed to aggregate {self.workflow.entity_type} statuses"
            ) from exc

        tracked = 0
        for status, count in rows:
            if status not in histogram:
                logger.warning(
                    "Ignoring unknown %s status in summary: %s",
                    self.workflow.entity_type,
                    status,
                    extra=self._log_context(),
                )
                continue
            histogram[status] += count
            tracked += count

        histogram[self.workflow.default_status] += total - tracked
        return histogram
