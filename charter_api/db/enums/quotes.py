"""Quote request enums."""

from enum import Enum


class QuoteStatus(str, Enum):
    """
    Quote request status workflow.

    new_request → reviewing → quote_sent → awaiting_confirmation → confirmed
    → payment_pending → paid → completed, with cancelled reachable from any
    non-terminal status.
    """

    NEW_REQUEST = "new_request"
    REVIEWING = "reviewing"
    QUOTE_SENT = "quote_sent"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    CONFIRMED = "confirmed"
    PAYMENT_PENDING = "payment_pending"
    PAID = "paid"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ServiceType(str, Enum):
    """Charter service requested on the quote form."""

    CHARTER = "charter"
    EMPTY_LEGS = "empty_legs"
    MULTICITY = "multicity"
    HELICOPTER = "helicopter"
    MEDICAL = "medical"
    CARGO = "cargo"
    OTHER = "other"
