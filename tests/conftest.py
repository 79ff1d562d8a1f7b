"""
Test configuration and fixtures.

Provides:
- Database session on a fresh in-memory SQLite schema per test
- Factories for quote requests, contact submissions and delivery records
- HTTPX AsyncClient with the session injected into the app
"""
import os
import uuid
from collections.abc import AsyncGenerator, Callable, Generator
from datetime import date, datetime

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["ENV"] = "test"
os.environ["RESEND_WEBHOOK_SECRET"] = "test-webhook-secret"
os.environ["TRUST_PROXY_HEADERS"] = "False"

from charter_api.core.deps import get_db
from charter_api.db.base import Base
from charter_api.db.models import ContactSubmission, EmailDelivery, QuoteRequest
from charter_api.db.session import SessionLocal, engine
from charter_api.main import app

ADMIN_EMAIL = "ops@flyfleet.test"


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Creates a database session on a freshly created schema.

    App code commits freely; the schema is dropped after each test.
    """
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()

    yield session

    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def create_quote(db: Session) -> Callable[..., QuoteRequest]:
    """Factory for persisted quote requests."""

    def _create(created_at: datetime | None = None, **overrides) -> QuoteRequest:
        fields = {
            "id": uuid.uuid4(),
            "service_type": "charter",
            "full_name": "Ana Pereira",
            "email": f"client-{uuid.uuid4().hex[:8]}@example.com",
            "phone": "+5491155550000",
            "passengers": 4,
            "origin": "SAEZ",
            "destination": "SUMU",
            "departure_date": date(2026, 11, 20),
            "departure_time": "09:30",
            "locale": "es",
        }
        fields.update(overrides)
        if created_at is not None:
            fields["created_at"] = created_at
        quote = QuoteRequest(**fields)
        db.add(quote)
        db.commit()
        return quote

    return _create


@pytest.fixture(scope="function")
def create_contact(db: Session) -> Callable[..., ContactSubmission]:
    """Factory for persisted contact submissions."""

    def _create(created_at: datetime | None = None, **overrides) -> ContactSubmission:
        fields = {
            "id": uuid.uuid4(),
            "full_name": "Martin Alvarez",
            "email": f"contact-{uuid.uuid4().hex[:8]}@example.com",
            "subject": "Empty leg availability",
            "message": "Do you have empty legs to Punta del Este in December?",
            "contact_via_whatsapp": True,
            "locale": "es",
        }
        fields.update(overrides)
        if created_at is not None:
            fields["created_at"] = created_at
        contact = ContactSubmission(**fields)
        db.add(contact)
        db.commit()
        return contact

    return _create


@pytest.fixture(scope="function")
def create_delivery(db: Session) -> Callable[..., EmailDelivery]:
    """Factory for persisted email delivery records."""

    def _create(**overrides) -> EmailDelivery:
        fields = {
            "resend_message_id": f"re_{uuid.uuid4().hex[:16]}",
            "recipient_email": "client@example.com",
            "subject": "Your charter quote request",
            "email_type": "quote_confirmation",
        }
        fields.update(overrides)
        delivery = EmailDelivery(**fields)
        db.add(delivery)
        db.commit()
        return delivery

    return _create


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """
    Create AsyncClient acting as an authenticated admin.
    """
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"X-Admin-Email": ADMIN_EMAIL, "User-Agent": "pytest-admin"},
    ) as c:
        yield c

    app.dependency_overrides.clear()
