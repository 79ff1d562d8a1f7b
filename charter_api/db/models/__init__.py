"""SQLAlchemy ORM models."""

from charter_api.db.models.contacts import ContactSubmission
from charter_api.db.models.email import EmailDelivery, WebhookEventLog
from charter_api.db.models.quotes import QuoteRequest
from charter_api.db.models.status_changes import EntityStatusSummary, StatusChangeEvent

__all__ = [
    "ContactSubmission",
    "EmailDelivery",
    "EntityStatusSummary",
    "QuoteRequest",
    "StatusChangeEvent",
    "WebhookEventLog",
]
