"""Enum definitions for application constants."""

from charter_api.db.enums.contacts import ContactStatus
from charter_api.db.enums.defaults import (
    DEFAULT_CONTACT_STATUS,
    DEFAULT_EMAIL_DELIVERY_STATUS,
    DEFAULT_EMAIL_TYPE,
    DEFAULT_QUOTE_STATUS,
)
from charter_api.db.enums.email import EmailDeliveryStatus, EmailType, ResendEventType
from charter_api.db.enums.entities import EntityType, EventStream
from charter_api.db.enums.quotes import QuoteStatus, ServiceType

__all__ = [
    "ContactStatus",
    "DEFAULT_CONTACT_STATUS",
    "DEFAULT_EMAIL_DELIVERY_STATUS",
    "DEFAULT_EMAIL_TYPE",
    "DEFAULT_QUOTE_STATUS",
    "EmailDeliveryStatus",
    "EmailType",
    "EntityType",
    "EventStream",
    "QuoteStatus",
    "ResendEventType",
    "ServiceType",
]
