"""Pydantic schemas for email delivery tracking and webhooks."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel


class EmailDeliveryStatusRead(BaseModel):
    """Delivery record for one provider message id."""

    id: UUID
    resend_message_id: str
    status: str
    recipient_email: str
    subject: str
    email_type: str
    sent_at: datetime | None
    delivered_at: datetime | None
    bounced_at: datetime | None
    failed_at: datetime | None
    complained_at: datetime | None
    error_message: str | None
    open_count: int
    click_count: int
    created_at: datetime
    updated_at: datetime
    webhook_data: dict[str, Any] | None = None


class EmailDeliveryStats(BaseModel):
    period_days: int
    total_sent: int
    delivered: int
    bounced: int
    failed: int
    complained: int
    pending: int
    delivery_rate: float
    bounce_rate: float


class WebhookProcessingResponse(BaseModel):
    success: bool
    processed: bool
    email_id: str | None = None
    event_type: str | None = None
    new_status: str | None = None
    error: str | None = None
    delivery_record_id: UUID | None = None
    duplicate: bool = False


class WebhookError(BaseModel):
    received_at: datetime
    event_type: str | None
    email_id: str | None
    error: str


class WebhookStatistics(BaseModel):
    """Webhook ingestion counts over a time window."""

    timeframe: str
    total_events: int
    processed: int
    failed: int
    by_event_type: dict[str, int]
    by_status: dict[str, int]
    recent_errors: list[WebhookError]


class WebhookRetryResponse(BaseModel):
    retried: int
