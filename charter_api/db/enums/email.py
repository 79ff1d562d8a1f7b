"""Email-related enums."""

from enum import Enum


class EmailDeliveryStatus(str, Enum):
    """Delivery status of outbound emails, driven by provider webhooks."""

    PENDING = "pending"
    SENT = "sent"
    DELIVERED = "delivered"
    BOUNCED = "bounced"
    FAILED = "failed"
    COMPLAINED = "complained"


class ResendEventType(str, Enum):
    """Event types posted by the Resend delivery webhook."""

    SENT = "email.sent"
    DELIVERED = "email.delivered"
    DELIVERY_DELAYED = "email.delivery_delayed"
    COMPLAINED = "email.complained"
    BOUNCED = "email.bounced"
    DELIVERY_FAILED = "email.delivery_failed"
    OPENED = "email.opened"
    CLICKED = "email.clicked"


class EmailType(str, Enum):
    """Kind of outbound email tracked by a delivery record."""

    QUOTE_CONFIRMATION = "quote_confirmation"
    QUOTE_ADMIN_NOTIFICATION = "quote_admin_notification"
    CONTACT_CONFIRMATION = "contact_confirmation"
    CONTACT_ADMIN_NOTIFICATION = "contact_admin_notification"
    OTHER = "other"
