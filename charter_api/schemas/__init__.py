"""Pydantic schemas for API request/response models."""

from charter_api.schemas.contacts import ContactSubmissionRead
from charter_api.schemas.email import (
    EmailDeliveryStats,
    EmailDeliveryStatusRead,
    WebhookProcessingResponse,
    WebhookRetryResponse,
    WebhookStatistics,
)
from charter_api.schemas.quotes import QuoteRequestRead
from charter_api.schemas.status import (
    BulkStatusChange,
    BulkStatusResponse,
    EntityStatusRead,
    StaleEntityRead,
    StatusChangeEventRead,
    StatusChangeRequest,
    StatusHistogramResponse,
    StatusUpdateResponse,
)

__all__ = [
    "BulkStatusChange",
    "BulkStatusResponse",
    "ContactSubmissionRead",
    "EmailDeliveryStats",
    "EmailDeliveryStatusRead",
    "EntityStatusRead",
    "QuoteRequestRead",
    "StaleEntityRead",
    "StatusChangeEventRead",
    "StatusChangeRequest",
    "StatusHistogramResponse",
    "StatusUpdateResponse",
    "WebhookProcessingResponse",
    "WebhookRetryResponse",
    "WebhookStatistics",
]
