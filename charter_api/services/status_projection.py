"""Derive current status from status change events."""

from collections.abc import Iterable
from uuid import UUID

from charter_api.db.models import StatusChangeEvent
from charter_api.services.event_store import EventStore


def project_status(events: Iterable[StatusChangeEvent], default_status: str) -> str:
    """
    Return the ``to_status`` of the chronologically latest event.

    Events sharing a timestamp are ordered by ``sequence`` (append order).
    With no events the entity is in ``default_status``.
    """
    latest: StatusChangeEvent | None = None
    for event in events:
        if latest is None or (event.occurred_at, event.sequence) > (
            latest.occurred_at,
            latest.sequence,
        ):
            latest = event
    return latest.to_status if latest is not None else default_status


class ProjectionEngine:
    """Reads current status through an event store. Nothing is cached."""

    def __init__(self, store: EventStore, default_status: str):
        self.store = store
        self.default_status = default_status

    def current_status(self, entity_id: UUID) -> str:
        latest = self.store.latest_event(entity_id)
        return project_status([latest] if latest else [], self.default_status)

    def current_statuses(self, entity_ids: Iterable[UUID]) -> dict[UUID, str]:
        """Current status per entity, falling back to the default for untouched ones."""
        ids = list(entity_ids)
        known = self.store.current_statuses(ids)
        return {entity_id: known.get(entity_id, self.default_status) for entity_id in ids}
