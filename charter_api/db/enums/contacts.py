"""Contact submission enums."""

from enum import Enum


class ContactStatus(str, Enum):
    """Contact submission status workflow: pending → responded → closed."""

    PENDING = "pending"
    RESPONDED = "responded"
    CLOSED = "closed"
