"""Entity type and event stream enums."""

from enum import Enum


class EntityType(str, Enum):
    """Trackable business objects."""

    QUOTE = "quote"
    CONTACT = "contact"


class EventStream(str, Enum):
    """
    Event names scoping status events in the shared event log.

    Lookups always filter by stream so unrelated subsystems never read each
    other's events.
    """

    QUOTE_STATUS_CHANGE = "quote_status_change"
    CONTACT_STATUS_CHANGE = "contact_status_change"
