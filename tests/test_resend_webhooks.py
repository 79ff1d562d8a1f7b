"""Tests for Resend delivery webhooks."""

import base64
import hashlib
import hmac
import json
import time
import uuid

import pytest
from sqlalchemy import select

from charter_api.db.models import WebhookEventLog
from charter_api.services.webhooks import resend
from charter_api.services.webhooks.registry import get_handler

WEBHOOK_SECRET = "test-webhook-secret"


def _generate_svix_signature(body: bytes, secret: str, timestamp: str, msg_id: str | None = None):
    """Generate a valid Svix signature for testing."""
    msg_id = msg_id or str(uuid.uuid4())
    signed_payload = f"{msg_id}.{timestamp}.{body.decode('utf-8')}"

    def _pad_b64(value: str) -> str:
        return value + "=" * (-len(value) % 4)

    if secret.startswith("whsec_"):
        secret_bytes = base64.urlsafe_b64decode(_pad_b64(secret[6:]))
    else:
        secret_bytes = secret.encode("utf-8")

    signature = hmac.new(secret_bytes, signed_payload.encode("utf-8"), hashlib.sha256).digest()
    return msg_id, f"v1,{base64.b64encode(signature).decode('utf-8')}"


def _hex_signature(body: bytes, secret: str = WEBHOOK_SECRET) -> str:
    return "sha256=" + hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def _event_body(event_type: str, email_id: str, **data) -> bytes:
    payload = {
        "type": event_type,
        "created_at": "2026-10-19T12:00:00.000Z",
        "data": {
            "email_id": email_id,
            "from": "contact@fly-fleet.com",
            "to": ["client@example.com"],
            "subject": "Your charter quote request",
            **data,
        },
    }
    return json.dumps(payload).encode("utf-8")


async def _post_signed(client, body: bytes):
    return await client.post(
        "/webhooks/resend",
        content=body,
        headers={"Content-Type": "application/json", "resend-signature": _hex_signature(body)},
    )


class TestResendWebhookSignature:
    """Test signature verification."""

    def test_hex_signature_valid(self):
        body = b'{"type": "email.delivered", "data": {}}'

        assert resend.verify_signature(body, {"resend-signature": _hex_signature(body)}, WEBHOOK_SECRET)

    def test_bare_hex_signature_valid(self):
        body = b'{"type": "email.delivered", "data": {}}'
        bare = _hex_signature(body).removeprefix("sha256=")

        assert resend.verify_signature(body, {"resend-signature": bare}, WEBHOOK_SECRET)

    def test_tampered_body_rejected(self):
        body = b'{"type": "email.delivered", "data": {"email_id": "re_1"}}'
        signature = _hex_signature(body)

        tampered = body.replace(b"re_1", b"re_2")
        assert not resend.verify_signature(tampered, {"resend-signature": signature}, WEBHOOK_SECRET)

    def test_wrong_secret_rejected(self):
        body = b'{"type": "email.delivered", "data": {}}'

        headers = {"resend-signature": _hex_signature(body, "other-secret")}
        assert not resend.verify_signature(body, headers, WEBHOOK_SECRET)

    def test_missing_secret_or_signature_rejected(self):
        body = b'{"type": "email.delivered", "data": {}}'

        assert not resend.verify_signature(body, {"resend-signature": _hex_signature(body)}, "")
        assert not resend.verify_signature(body, {}, WEBHOOK_SECRET)

    def test_svix_signature_valid(self):
        body = b'{"type": "email.delivered", "data": {}}'
        timestamp = str(int(time.time()))
        msg_id, signature = _generate_svix_signature(body, WEBHOOK_SECRET, timestamp)

        headers = {"svix-id": msg_id, "svix-timestamp": timestamp, "svix-signature": signature}
        assert resend.verify_signature(body, headers, WEBHOOK_SECRET) is True

    def test_svix_whsec_secret(self):
        secret = "whsec_" + base64.urlsafe_b64encode(b"0123456789abcdef0123").decode("utf-8")
        body = b'{"type": "email.sent", "data": {}}'
        timestamp = str(int(time.time()))
        msg_id, signature = _generate_svix_signature(body, secret, timestamp)

        headers = {"svix-id": msg_id, "svix-timestamp": timestamp, "svix-signature": signature}
        assert resend.verify_signature(body, headers, secret) is True

    def test_svix_stale_timestamp_rejected(self):
        body = b'{"type": "email.delivered", "data": {}}'
        timestamp = str(int(time.time()) - 3600)
        msg_id, signature = _generate_svix_signature(body, WEBHOOK_SECRET, timestamp)

        headers = {"svix-id": msg_id, "svix-timestamp": timestamp, "svix-signature": signature}
        assert resend.verify_signature(body, headers, WEBHOOK_SECRET) is False

    def test_svix_missing_headers_rejected(self):
        body = b'{"type": "email.delivered", "data": {}}'

        headers = {"svix-signature": "v1,abc"}
        assert resend.verify_signature(body, headers, WEBHOOK_SECRET) is False

    def test_non_ascii_hex_signature_rejected(self):
        body = b'{"type": "email.delivered", "data": {}}'

        assert resend.verify_signature(body, {"resend-signature": "sha256=\xfc"}, WEBHOOK_SECRET) is False

    def test_non_ascii_svix_signature_rejected(self):
        body = b'{"type": "email.delivered", "data": {}}'
        timestamp = str(int(time.time()))

        headers = {"svix-id": "msg_1", "svix-timestamp": timestamp, "svix-signature": "v1,\xfc\xe9"}
        assert resend.verify_signature(body, headers, WEBHOOK_SECRET) is False

    def test_svix_signature_over_non_utf8_body(self):
        body = b'{"type": "email.sent", "data": {"subject": "\xff\xfe"}}'
        timestamp = str(int(time.time()))
        signed = f"msg_1.{timestamp}.".encode("utf-8") + body
        digest = hmac.new(WEBHOOK_SECRET.encode("utf-8"), signed, hashlib.sha256).digest()
        valid = f"v1,{base64.b64encode(digest).decode('utf-8')}"

        headers = {"svix-id": "msg_1", "svix-timestamp": timestamp, "svix-signature": valid}
        assert resend.verify_signature(body, headers, WEBHOOK_SECRET) is True

        headers["svix-signature"] = "v1,bm90LXRoZS1zaWduYXR1cmU="
        assert resend.verify_signature(body, headers, WEBHOOK_SECRET) is False


class TestResendEventMapping:
    """Test event type to delivery update mapping."""

    def test_delivery_events_map_to_statuses(self):
        expected = {
            "email.sent": "sent",
            "email.delivered": "delivered",
            "email.bounced": "bounced",
            "email.delivery_failed": "failed",
            "email.complained": "complained",
        }
        for event_type, status in expected.items():
            update = resend.map_event(json.loads(_event_body(event_type, "re_1")))
            assert update["status"] == status

    def test_status_timestamp_comes_from_event(self):
        update = resend.map_event(json.loads(_event_body("email.delivered", "re_1")))

        assert update["delivered_at"].isoformat() == "2026-10-19T12:00:00+00:00"

    def test_bounce_uses_provider_error_message(self):
        body = _event_body("email.bounced", "re_1", error={"message": "Recipient address rejected"})

        assert resend.map_event(json.loads(body))["error_message"] == "Recipient address rejected"

    def test_bounce_and_failure_default_messages(self):
        bounced = resend.map_event(json.loads(_event_body("email.bounced", "re_1")))
        failed = resend.map_event(json.loads(_event_body("email.delivery_failed", "re_1")))

        assert bounced["error_message"] == "Email bounced"
        assert failed["error_message"] == "Email delivery failed"

    def test_delivery_delayed_only_notes_error(self):
        update = resend.map_event(json.loads(_event_body("email.delivery_delayed", "re_1")))

        assert update == {"error_message": "Delivery delayed: Unknown reason"}

    def test_engagement_and_unknown_events_do_not_map(self):
        for event_type in ("email.opened", "email.clicked", "email.scheduled"):
            assert resend.map_event(json.loads(_event_body(event_type, "re_1"))) is None


class TestResendWebhookEndpoint:
    """Test the POST /webhooks/resend flow."""

    async def test_delivered_event_updates_record(self, client, db, create_delivery):
        delivery = create_delivery()
        body = _event_body("email.delivered", delivery.resend_message_id)

        response = await _post_signed(client, body)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["processed"] is True
        assert data["new_status"] == "delivered"
        assert data["delivery_record_id"] == str(delivery.id)

        db.refresh(delivery)
        assert delivery.status == "delivered"
        assert delivery.delivered_at is not None
        assert delivery.webhook_data["type"] == "email.delivered"

    async def test_invalid_signature_rejected_without_update(self, client, db, create_delivery):
        delivery = create_delivery()
        body = _event_body("email.bounced", delivery.resend_message_id)

        response = await client.post(
            "/webhooks/resend",
            content=body,
            headers={"resend-signature": _hex_signature(body, "forged-secret")},
        )

        assert response.status_code == 401
        db.refresh(delivery)
        assert delivery.status == "pending"

        log = db.execute(select(WebhookEventLog)).scalar_one()
        assert log.processed is False
        assert log.error == "Invalid webhook signature"

    async def test_non_ascii_signature_header_is_401(self, client, db, create_delivery):
        delivery = create_delivery()
        body = _event_body("email.delivered", delivery.resend_message_id)

        response = await client.post(
            "/webhooks/resend",
            content=body,
            headers={"resend-signature": b"sha256=\xfc"},
        )

        assert response.status_code == 401
        log = db.execute(select(WebhookEventLog)).scalar_one()
        assert log.error == "Invalid webhook signature"
        db.refresh(delivery)
        assert delivery.status == "pending"

    async def test_svix_signed_request_accepted(self, client, db, create_delivery):
        delivery = create_delivery()
        body = _event_body("email.sent", delivery.resend_message_id)
        timestamp = str(int(time.time()))
        msg_id, signature = _generate_svix_signature(body, WEBHOOK_SECRET, timestamp)

        response = await client.post(
            "/webhooks/resend",
            content=body,
            headers={"svix-id": msg_id, "svix-timestamp": timestamp, "svix-signature": signature},
        )

        assert response.status_code == 200
        assert response.json()["new_status"] == "sent"
        log = db.execute(select(WebhookEventLog)).scalar_one()
        assert log.event_key == msg_id

    async def test_unknown_delivery_record_acknowledged(self, client, db):
        body = _event_body("email.delivered", "re_does_not_exist")

        response = await _post_signed(client, body)

        assert response.status_code == 200
        data = response.json()
        assert data["processed"] is False
        assert data["error"] == "Email delivery record not found"

        log = db.execute(select(WebhookEventLog)).scalar_one()
        assert log.email_id == "re_does_not_exist"
        assert log.processed is False

    async def test_malformed_payload_rejected(self, client, db):
        body = b"not json at all"

        response = await _post_signed(client, body)

        assert response.status_code == 400
        log = db.execute(select(WebhookEventLog)).scalar_one()
        assert log.event_type == "unknown"
        assert log.error == "Invalid JSON payload"

    async def test_missing_email_id_rejected(self, client, db):
        body = json.dumps({"type": "email.delivered", "data": {}}).encode("utf-8")

        response = await _post_signed(client, body)

        assert response.status_code == 400

        log = db.execute(select(WebhookEventLog)).scalar_one()
        assert log.event_type == "email.delivered"
        assert log.processed is False
        assert log.error == "Missing data.email_id"

    async def test_unknown_provider_is_404(self, client):
        response = await client.post("/webhooks/mailgun", content=b"{}")

        assert response.status_code == 404

    async def test_replay_converges_to_same_state(self, client, db, create_delivery):
        delivery = create_delivery()
        body = _event_body("email.delivered", delivery.resend_message_id)

        first = await _post_signed(client, body)
        db.refresh(delivery)
        snapshot = (delivery.status, delivery.delivered_at, delivery.error_message)

        second = await _post_signed(client, body)
        db.refresh(delivery)

        assert first.json()["new_status"] == second.json()["new_status"] == "delivered"
        assert second.json()["duplicate"] is True
        assert (delivery.status, delivery.delivered_at, delivery.error_message) == snapshot

    async def test_replayed_open_counts_once(self, client, db, create_delivery):
        delivery = create_delivery(status="delivered")
        body = _event_body("email.opened", delivery.resend_message_id)

        await _post_signed(client, body)
        await _post_signed(client, body)

        db.refresh(delivery)
        assert delivery.open_count == 1
        assert delivery.opened_at is not None

    async def test_distinct_clicks_all_count(self, client, db, create_delivery):
        delivery = create_delivery(status="delivered")

        await _post_signed(client, _event_body("email.clicked", delivery.resend_message_id, link="https://fly-fleet.com/a"))
        await _post_signed(client, _event_body("email.clicked", delivery.resend_message_id, link="https://fly-fleet.com/b"))

        db.refresh(delivery)
        assert delivery.click_count == 2

    async def test_late_sent_does_not_regress_delivered(self, client, db, create_delivery):
        delivery = create_delivery()

        await _post_signed(client, _event_body("email.delivered", delivery.resend_message_id))
        response = await _post_signed(client, _event_body("email.sent", delivery.resend_message_id))

        assert response.json()["new_status"] == "delivered"
        db.refresh(delivery)
        assert delivery.status == "delivered"
        assert delivery.sent_at is not None

    async def test_bounce_after_delivery_applies(self, client, db, create_delivery):
        delivery = create_delivery(status="delivered")
        body = _event_body(
            "email.bounced", delivery.resend_message_id, error={"message": "Mailbox full"}
        )

        await _post_signed(client, body)

        db.refresh(delivery)
        assert delivery.status == "bounced"
        assert delivery.error_message == "Mailbox full"

    async def test_complaint_sets_message(self, client, db, create_delivery):
        delivery = create_delivery(status="sent")

        await _post_signed(client, _event_body("email.complained", delivery.resend_message_id))

        db.refresh(delivery)
        assert delivery.status == "complained"
        assert delivery.error_message == "Recipient marked as spam/complaint"

    async def test_unknown_event_type_not_processed(self, client, db, create_delivery):
        delivery = create_delivery()

        response = await _post_signed(client, _event_body("email.scheduled", delivery.resend_message_id))

        assert response.status_code == 200
        assert response.json()["processed"] is False
        db.refresh(delivery)
        assert delivery.status == "pending"


class TestWebhookMonitoring:
    """Test statistics and retry."""

    async def test_statistics(self, client, db, create_delivery):
        delivery = create_delivery()
        await _post_signed(client, _event_body("email.sent", delivery.resend_message_id))
        await _post_signed(client, _event_body("email.delivered", delivery.resend_message_id))
        await _post_signed(client, _event_body("email.delivered", "re_unknown"))

        stats = resend.get_webhook_statistics(db, hours_back=24)

        assert stats["total_events"] == 3
        assert stats["processed"] == 2
        assert stats["failed"] == 1
        assert stats["by_event_type"] == {"email.sent": 1, "email.delivered": 2}
        assert stats["by_status"] == {"sent": 1, "delivered": 1}
        assert stats["recent_errors"][0]["email_id"] == "re_unknown"

        response = await client.get("/webhooks/resend/stats", params={"hours": 24})
        assert response.status_code == 200
        assert response.json()["total_events"] == 3

    async def test_retry_applies_events_for_late_records(self, client, db, create_delivery):
        body = _event_body("email.delivered", "re_late_record")
        await _post_signed(client, body)
        delivery = create_delivery(resend_message_id="re_late_record")

        response = await client.post("/webhooks/resend/retry", params={"hours": 1})

        assert response.status_code == 200
        assert response.json() == {"retried": 1}
        db.refresh(delivery)
        assert delivery.status == "delivered"

        # Already applied events are not retried again
        assert resend.retry_failed_webhooks(db, hours_back=1) == 0

    def test_handler_registry(self):
        assert isinstance(get_handler("resend"), resend.ResendWebhookHandler)
        with pytest.raises(KeyError, match="Unknown webhook handler"):
            get_handler("mailgun")
