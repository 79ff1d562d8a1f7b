"""Exceptions raised by the status tracking engine."""

from uuid import UUID


class StatusTrackingError(Exception):
    """Base exception for status tracking errors."""

    pass


class InvalidTransitionError(StatusTrackingError):
    """Target status is not reachable from the current status."""

    def __init__(self, from_status: str, to_status: str, allowed: list[str]):
        self.from_status = from_status
        self.to_status = to_status
        self.allowed = list(allowed)
        valid = ", ".join(self.allowed) if self.allowed else "none"
        super().__init__(
            f"Invalid status transition from {from_status} to {to_status}. "
            f"Valid transitions: {valid}"
        )


class EntityNotFoundError(StatusTrackingError):
    """Referenced entity has no backing record."""

    def __init__(self, entity_type: str, entity_id: UUID | str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type.capitalize()} not found: {entity_id}")


class StatusConflictError(StatusTrackingError):
    """Another writer appended an event after our read. Safe to retry."""

    def __init__(self, entity_id: UUID | str, expected: int, actual: int | None = None):
        self.entity_id = entity_id
        self.expected = expected
        self.actual = actual
        detail = f"expected version {expected}"
        if actual is not None:
            detail += f", got {actual}"
        super().__init__(f"Concurrent status change for {entity_id}: {detail}")


class EventStoreError(StatusTrackingError):
    """The underlying event store failed to read or write."""

    pass
