"""Centralized defaults for enums."""

from charter_api.db.enums.contacts import ContactStatus
from charter_api.db.enums.email import EmailDeliveryStatus, EmailType
from charter_api.db.enums.quotes import QuoteStatus


DEFAULT_QUOTE_STATUS: QuoteStatus = QuoteStatus.NEW_REQUEST
DEFAULT_CONTACT_STATUS: ContactStatus = ContactStatus.PENDING
DEFAULT_EMAIL_DELIVERY_STATUS: EmailDeliveryStatus = EmailDeliveryStatus.PENDING
DEFAULT_EMAIL_TYPE: EmailType = EmailType.OTHER
