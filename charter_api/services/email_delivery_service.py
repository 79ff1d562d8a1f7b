"""Email delivery records - creation and reporting."""

import logging
from datetime import timedelta
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from charter_api.db.enums import DEFAULT_EMAIL_TYPE, EmailDeliveryStatus, EmailType
from charter_api.db.models import EmailDelivery
from charter_api.db.types import utc_now

logger = logging.getLogger(__name__)


def get_email_delivery(db: Session, resend_message_id: str) -> EmailDelivery | None:
    return db.execute(
        select(EmailDelivery).where(EmailDelivery.resend_message_id == resend_message_id)
    ).scalar_one_or_none()


def record_outbound_email(
    db: Session,
    *,
    resend_message_id: str,
    recipient_email: str,
    subject: str,
    email_type: EmailType | str = DEFAULT_EMAIL_TYPE,
    quote_request_id: UUID | None = None,
    contact_submission_id: UUID | None = None,
) -> EmailDelivery:
    """
    Create the delivery record for an email just handed to Resend.

    Idempotent on ``resend_message_id``: a second call returns the existing
    record unchanged.
    """
    existing = get_email_delivery(db, resend_message_id)
    if existing:
        return existing

    delivery = EmailDelivery(
        resend_message_id=resend_message_id,
        recipient_email=recipient_email,
        subject=subject,
        email_type=email_type.value if isinstance(email_type, EmailType) else email_type,
        quote_request_id=quote_request_id,
        contact_submission_id=contact_submission_id,
        status=EmailDeliveryStatus.PENDING.value,
    )
    db.add(delivery)
    try:
        db.commit()
    except IntegrityError:
        # Concurrent insert for the same message id
        db.rollback()
        existing = get_email_delivery(db, resend_message_id)
        if existing is None:
            raise
        return existing

    db.refresh(delivery)
    logger.info("Email delivery recorded: delivery=%s type=%s", delivery.id, delivery.email_type)
    return delivery


def get_email_delivery_status(db: Session, resend_message_id: str) -> dict | None:
    """Delivery status view for one provider message id, or None."""
    delivery = get_email_delivery(db, resend_message_id)
    if not delivery:
        return None

    return {
        "id": delivery.id,
        "resend_message_id": delivery.resend_message_id,
        "status": delivery.status,
        "recipient_email": delivery.recipient_email,
        "subject": delivery.subject,
        "email_type": delivery.email_type,
        "sent_at": delivery.sent_at,
        "delivered_at": delivery.delivered_at,
        "bounced_at": delivery.bounced_at,
        "failed_at": delivery.failed_at,
        "complained_at": delivery.complained_at,
        "error_message": delivery.error_message,
        "open_count": delivery.open_count,
        "click_count": delivery.click_count,
        "created_at": delivery.created_at,
        "updated_at": delivery.updated_at,
        "webhook_data": delivery.webhook_data,
    }


def _rate(part: int, whole: int) -> float:
    if whole == 0:
        return 0.0
    return round(part / whole * 100, 1)


def get_email_delivery_stats(db: Session, days: int = 30) -> dict:
    """
    Delivery counts for records created in the last ``days`` days.

    Every record counts toward ``total_sent``. Rates are percentages of
    ``total_sent`` rounded to one decimal.
    """
    since = utc_now() - timedelta(days=days)
    rows = db.execute(
        select(EmailDelivery.status, func.count())
        .where(EmailDelivery.created_at >= since)
        .group_by(EmailDelivery.status)
    ).all()
    by_status = {status.value: 0 for status in EmailDeliveryStatus}
    for status, count in rows:
        by_status[status] = by_status.get(status, 0) + count

    total = sum(by_status.values())
    delivered = by_status[EmailDeliveryStatus.DELIVERED.value]
    bounced = by_status[EmailDeliveryStatus.BOUNCED.value]
    failed = by_status[EmailDeliveryStatus.FAILED.value]

    return {
        "period_days": days,
        "total_sent": total,
        "delivered": delivered,
        "bounced": bounced,
        "failed": failed,
        "complained": by_status[EmailDeliveryStatus.COMPLAINED.value],
        "pending": by_status[EmailDeliveryStatus.PENDING.value],
        "delivery_rate": _rate(delivered, total),
        "bounce_rate": _rate(bounced, total),
    }
