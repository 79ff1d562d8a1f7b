"""Email delivery tracking models."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, ForeignKey, Index, Integer, String, Text, func, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from charter_api.db.base import Base
from charter_api.db.enums import DEFAULT_EMAIL_DELIVERY_STATUS, DEFAULT_EMAIL_TYPE
from charter_api.db.types import utc_now

JSONType = JSON().with_variant(JSONB(), "postgresql")


class EmailDelivery(Base):
    """
    One outbound email handed to Resend.

    Keyed by the provider's message id: webhook events correlate on
    ``resend_message_id``, never on the local id.
    """

    __tablename__ = "email_deliveries"
    __table_args__ = (
        Index("uq_email_deliveries_resend_id", "resend_message_id", unique=True),
        Index("idx_email_deliveries_status_created", "status", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    resend_message_id: Mapped[str] = mapped_column(String(255), nullable=False)
    recipient_email: Mapped[str] = mapped_column(String(255), nullable=False)
    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    email_type: Mapped[str] = mapped_column(
        String(50), nullable=False, default=DEFAULT_EMAIL_TYPE.value
    )
    quote_request_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("quote_requests.id", ondelete="SET NULL"), nullable=True
    )
    contact_submission_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("contact_submissions.id", ondelete="SET NULL"), nullable=True
    )

    status: Mapped[str] = mapped_column(
        String(20),
        default=DEFAULT_EMAIL_DELIVERY_STATUS.value,
        server_default=text(f"'{DEFAULT_EMAIL_DELIVERY_STATUS.value}'"),
        nullable=False,
    )
    sent_at: Mapped[datetime | None] = mapped_column(nullable=True)
    delivered_at: Mapped[datetime | None] = mapped_column(nullable=True)
    bounced_at: Mapped[datetime | None] = mapped_column(nullable=True)
    failed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    complained_at: Mapped[datetime | None] = mapped_column(nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    opened_at: Mapped[datetime | None] = mapped_column(nullable=True)
    open_count: Mapped[int] = mapped_column(
        Integer, default=0, server_default=text("0"), nullable=False
    )
    clicked_at: Mapped[datetime | None] = mapped_column(nullable=True)
    click_count: Mapped[int] = mapped_column(
        Integer, default=0, server_default=text("0"), nullable=False
    )

    webhook_data: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        default=utc_now, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utc_now, server_default=func.now(), onupdate=utc_now, nullable=False
    )


class WebhookEventLog(Base):
    """
    Raw audit trail of every inbound delivery webhook.

    Written for every request that carries a payload, whether or not it was
    verified, matched a delivery record, or changed a status.
    """

    __tablename__ = "webhook_event_logs"
    __table_args__ = (
        Index("idx_webhook_logs_provider_received", "provider", "received_at"),
        Index("idx_webhook_logs_event_key", "provider", "event_key"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    provider: Mapped[str] = mapped_column(String(30), nullable=False, default="resend")
    event_key: Mapped[str | None] = mapped_column(String(255), nullable=True)
    event_type: Mapped[str] = mapped_column(String(50), nullable=False)
    email_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    delivery_record_id: Mapped[uuid.UUID | None] = mapped_column(nullable=True)

    success: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    processed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    duplicate: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    new_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    payload: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)

    occurred_at: Mapped[datetime | None] = mapped_column(nullable=True)
    received_at: Mapped[datetime] = mapped_column(
        default=utc_now, server_default=func.now(), nullable=False
    )
