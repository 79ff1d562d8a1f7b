"""Tests for email delivery records and reporting."""

import uuid
from datetime import timedelta

from sqlalchemy import func, select

from charter_api.db.enums import EmailType
from charter_api.db.models import EmailDelivery
from charter_api.db.types import utc_now
from charter_api.services import email_delivery_service


class TestRecordOutboundEmail:
    def test_creates_pending_record(self, db, create_quote):
        quote = create_quote()

        delivery = email_delivery_service.record_outbound_email(
            db,
            resend_message_id="re_abc123",
            recipient_email="client@example.com",
            subject="Your charter quote request",
            email_type=EmailType.QUOTE_CONFIRMATION,
            quote_request_id=quote.id,
        )

        assert delivery.status == "pending"
        assert delivery.email_type == "quote_confirmation"
        assert delivery.quote_request_id == quote.id
        assert delivery.open_count == 0

    def test_is_idempotent_on_message_id(self, db):
        first = email_delivery_service.record_outbound_email(
            db, resend_message_id="re_dup", recipient_email="a@example.com", subject="Hello"
        )
        second = email_delivery_service.record_outbound_email(
            db, resend_message_id="re_dup", recipient_email="b@example.com", subject="Other"
        )

        assert second.id == first.id
        assert second.recipient_email == "a@example.com"
        assert db.scalar(select(func.count()).select_from(EmailDelivery)) == 1

    def test_default_email_type(self, db):
        delivery = email_delivery_service.record_outbound_email(
            db, resend_message_id="re_other", recipient_email="a@example.com", subject="Hi"
        )

        assert delivery.email_type == "other"


class TestDeliveryStatus:
    def test_unknown_message_returns_none(self, db):
        assert email_delivery_service.get_email_delivery_status(db, "re_missing") is None

    def test_status_view(self, db, create_delivery):
        delivery = create_delivery(status="bounced", error_message="Mailbox full")

        status = email_delivery_service.get_email_delivery_status(db, delivery.resend_message_id)

        assert status["id"] == delivery.id
        assert status["status"] == "bounced"
        assert status["error_message"] == "Mailbox full"
        assert status["click_count"] == 0


class TestDeliveryStats:
    def test_rates_over_all_records(self, db, create_delivery):
        create_delivery(status="delivered")
        create_delivery(status="delivered")
        create_delivery(status="bounced")
        create_delivery(status="pending")

        stats = email_delivery_service.get_email_delivery_stats(db, days=30)

        assert stats["total_sent"] == 4
        assert stats["delivered"] == 2
        assert stats["bounced"] == 1
        assert stats["pending"] == 1
        assert stats["failed"] == 0
        assert stats["delivery_rate"] == 50.0
        assert stats["bounce_rate"] == 25.0

    def test_no_records_gives_zero_rates(self, db):
        stats = email_delivery_service.get_email_delivery_stats(db)

        assert stats["total_sent"] == 0
        assert stats["delivery_rate"] == 0.0
        assert stats["bounce_rate"] == 0.0

    def test_old_records_excluded(self, db, create_delivery):
        create_delivery(status="delivered")
        create_delivery(status="bounced", created_at=utc_now() - timedelta(days=60))

        stats = email_delivery_service.get_email_delivery_stats(db, days=30)

        assert stats["total_sent"] == 1
        assert stats["bounced"] == 0
        assert stats["delivery_rate"] == 100.0


class TestEmailDeliveryEndpoints:
    async def test_get_delivery_status(self, client, create_delivery):
        delivery = create_delivery(status="delivered")

        response = await client.get(f"/email-deliveries/{delivery.resend_message_id}")

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == str(delivery.id)
        assert data["status"] == "delivered"

    async def test_unknown_delivery_is_404(self, client, db):
        response = await client.get(f"/email-deliveries/re_{uuid.uuid4().hex}")

        assert response.status_code == 404

    async def test_stats_endpoint(self, client, create_delivery):
        create_delivery(status="delivered")
        create_delivery(status="failed")

        response = await client.get("/email-deliveries/stats", params={"days": 7})

        assert response.status_code == 200
        data = response.json()
        assert data["period_days"] == 7
        assert data["total_sent"] == 2
        assert data["delivery_rate"] == 50.0
