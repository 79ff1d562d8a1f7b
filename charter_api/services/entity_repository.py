"""Lookups on the business records whose status is tracked."""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from charter_api.db.types import utc_now
from charter_api.services.status_errors import EventStoreError


class EntityRepository:
    """
    Fetch-by-id and creation-time listing for one ORM model.

    Database failures surface as ``EventStoreError`` after a rollback, the same
    way the event store reports them.
    """

    def __init__(self, db: Session, model: type[Any]):
        self.db = db
        self.model = model

    def _failed(self, message: str) -> EventStoreError:
        self.db.rollback()
        return EventStoreError(message)

    def get(self, entity_id: UUID) -> Any | None:
        try:
            return self.db.get(self.model, entity_id)
        except SQLAlchemyError as exc:
            raise self._failed(f"Failed to load {self.model.__name__} {entity_id}") from exc

    def count(self) -> int:
        try:
            return self.db.scalar(select(func.count()).select_from(self.model)) or 0
        except SQLAlchemyError as exc:
            raise self._failed(f"Failed to count {self.model.__name__}") from exc

    def list_created_before(self, cutoff: datetime) -> list[Any]:
        """Entities created strictly before ``cutoff``, oldest first."""
        stmt = (
            select(self.model)
            .where(self.model.created_at < cutoff)
            .order_by(self.model.created_at.asc())
        )
        try:
            return list(self.db.execute(stmt).scalars().all())
        except SQLAlchemyError as exc:
            raise self._failed(f"Failed to list {self.model.__name__}") from exc

    def touch(self, entity: Any) -> None:
        """Bump ``updated_at`` when the model carries one. Flushed by the caller's commit."""
        if hasattr(entity, "updated_at"):
            entity.updated_at = utc_now()
