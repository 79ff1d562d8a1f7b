"""API routers."""

from charter_api.routers.status_tracking import build_status_router
from charter_api.schemas.contacts import ContactSubmissionRead
from charter_api.schemas.quotes import QuoteRequestRead
from charter_api.services import contact_status_service, quote_status_service

quotes_router = build_status_router(quote_status_service.engine, QuoteRequestRead)
contacts_router = build_status_router(contact_status_service.engine, ContactSubmissionRead)

__all__ = [
    "build_status_router",
    "contacts_router",
    "quotes_router",
]
