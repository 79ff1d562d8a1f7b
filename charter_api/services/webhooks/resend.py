"""Resend delivery webhooks: signature checks, status mapping, audit log."""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import logging
import time
from collections.abc import Mapping
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID

from fastapi import Request
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from charter_api.core.config import settings
from charter_api.core.status_rules import EMAIL_DELIVERY_TRANSITIONS
from charter_api.db.enums import EmailDeliveryStatus, ResendEventType
from charter_api.db.models import EmailDelivery, WebhookEventLog
from charter_api.db.types import utc_now

logger = logging.getLogger(__name__)

PROVIDER = "resend"
RECENT_ERRORS_LIMIT = 10

# Per-status timestamp column on EmailDelivery
_STATUS_TIMESTAMP_FIELDS = {
    EmailDeliveryStatus.SENT.value: "sent_at",
    EmailDeliveryStatus.DELIVERED.value: "delivered_at",
    EmailDeliveryStatus.BOUNCED.value: "bounced_at",
    EmailDeliveryStatus.FAILED.value: "failed_at",
    EmailDeliveryStatus.COMPLAINED.value: "complained_at",
}


class WebhookSignatureError(Exception):
    """Inbound webhook failed signature verification."""

    pass


class WebhookPayloadError(ValueError):
    """Inbound webhook body is too large, not JSON, or missing required fields."""

    pass


@dataclass
class WebhookProcessingResult:
    success: bool = False
    processed: bool = False
    email_id: str | None = None
    event_type: str | None = None
    new_status: str | None = None
    error: str | None = None
    delivery_record_id: UUID | None = None
    duplicate: bool = False

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        if self.delivery_record_id is not None:
            data["delivery_record_id"] = str(self.delivery_record_id)
        return data


# =============================================================================
# Signature verification
# =============================================================================


def _verify_hex_signature(body: bytes, signature: str, secret: str) -> bool:
    """HMAC-SHA256 hex digest, sent as ``sha256=<hex>`` or bare hex."""
    received = signature.strip()
    if received.startswith("sha256="):
        received = received[len("sha256=") :]
    expected = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    # Bytes compare: headers may carry non-ASCII text
    return hmac.compare_digest(
        expected.encode("ascii"), received.lower().encode("utf-8", "replace")
    )


def _verify_svix_signature(
    body: bytes,
    headers: Mapping[str, str],
    secret: str,
    tolerance_seconds: int,
) -> bool:
    """
    Verify the Svix scheme Resend signs webhooks with.

    The signed content is ``{svix-id}.{svix-timestamp}.{body}``; the header may
    carry several space-separated ``v1,<base64>`` signatures.
    """
    svix_id = headers.get("svix-id", "")
    svix_timestamp = headers.get("svix-timestamp", "")
    svix_signature = headers.get("svix-signature", "")

    if not svix_id or not svix_timestamp or not svix_signature:
        return False

    # Reject stale or malformed timestamps to prevent replay attacks.
    try:
        timestamp = int(svix_timestamp)
    except (TypeError, ValueError):
        return False
    if abs(int(time.time()) - timestamp) > tolerance_seconds:
        return False

    # Signed over the raw body bytes, which need not be valid UTF-8
    signed_payload = f"{svix_id}.{svix_timestamp}.".encode("utf-8", "replace") + body

    def _pad_b64(value: str) -> str:
        return value + "=" * (-len(value) % 4)

    # whsec_ secrets are base64; anything else is used as raw bytes.
    if secret.startswith("whsec_"):
        encoded = secret[len("whsec_") :]
        secret_bytes = None
        for decoder in (base64.urlsafe_b64decode, base64.b64decode):
            try:
                decoded = decoder(_pad_b64(encoded))
            except ValueError:
                decoded = None
            if decoded:
                secret_bytes = decoded
                break
        if secret_bytes is None:
            logger.warning("Invalid Resend webhook signing secret: malformed whsec_ encoding")
            return False
    else:
        secret_bytes = secret.encode("utf-8")

    expected = hmac.new(secret_bytes, signed_payload, hashlib.sha256).digest()
    expected_b64 = base64.b64encode(expected)

    for sig_entry in svix_signature.split(" "):
        parts = sig_entry.split(",", 1)
        if len(parts) == 2:
            version, sig = parts
            if version == "v1" and hmac.compare_digest(
                sig.encode("utf-8", "replace"), expected_b64
            ):
                return True

    return False


def verify_signature(
    body: bytes,
    headers: Mapping[str, str],
    secret: str,
    *,
    tolerance_seconds: int | None = None,
) -> bool:
    """
    Check a webhook body against its signature headers.

    ``headers`` keys must be lower-case. A missing secret or signature is a
    failed verification, never a pass.
    """
    if not secret:
        return False

    if headers.get("svix-signature"):
        tolerance = (
            settings.WEBHOOK_TIMESTAMP_TOLERANCE_SECONDS
            if tolerance_seconds is None
            else tolerance_seconds
        )
        return _verify_svix_signature(body, headers, secret, tolerance)

    signature = headers.get("resend-signature", "")
    if not signature:
        return False
    return _verify_hex_signature(body, signature, secret)


def compute_event_key(body: bytes, headers: Mapping[str, str]) -> str:
    """Stable identity of one delivery: the Svix message id, else a body digest."""
    svix_id = headers.get("svix-id")
    if svix_id:
        return svix_id
    return "sha256:" + hashlib.sha256(body).hexdigest()


# =============================================================================
# Event mapping
# =============================================================================


def parse_event_timestamp(value: Any) -> datetime:
    """Provider ``created_at`` as aware UTC, falling back to now."""
    if isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return utc_now()
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)
    return utc_now()


def _error_message(data: Mapping[str, Any], default: str) -> str:
    error = data.get("error")
    if isinstance(error, Mapping) and error.get("message"):
        return str(error["message"])
    return default


def map_event(event: Mapping[str, Any]) -> dict[str, Any] | None:
    """
    Translate a provider event into field updates for its delivery record.

    Returns None for events that carry no delivery information (opens, clicks
    and unknown types).
    """
    event_type = event.get("type")
    data = event.get("data") or {}
    timestamp = parse_event_timestamp(event.get("created_at"))

    if event_type == ResendEventType.SENT.value:
        return {"status": EmailDeliveryStatus.SENT.value, "sent_at": timestamp}

    if event_type == ResendEventType.DELIVERED.value:
        return {"status": EmailDeliveryStatus.DELIVERED.value, "delivered_at": timestamp}

    if event_type == ResendEventType.BOUNCED.value:
        return {
            "status": EmailDeliveryStatus.BOUNCED.value,
            "bounced_at": timestamp,
            "error_message": _error_message(data, "Email bounced"),
        }

    if event_type == ResendEventType.DELIVERY_FAILED.value:
        return {
            "status": EmailDeliveryStatus.FAILED.value,
            "failed_at": timestamp,
            "error_message": _error_message(data, "Email delivery failed"),
        }

    if event_type == ResendEventType.COMPLAINED.value:
        return {
            "status": EmailDeliveryStatus.COMPLAINED.value,
            "complained_at": timestamp,
            "error_message": "Recipient marked as spam/complaint",
        }

    if event_type == ResendEventType.DELIVERY_DELAYED.value:
        return {"error_message": f"Delivery delayed: {_error_message(data, 'Unknown reason')}"}

    return None


def _apply_engagement(delivery: EmailDelivery, event_type: str, occurred_at: datetime) -> bool:
    """Bump open/click counters. Returns False for other event types."""
    if event_type == ResendEventType.OPENED.value:
        delivery.open_count = (delivery.open_count or 0) + 1
        if not delivery.opened_at:
            delivery.opened_at = occurred_at
        return True
    if event_type == ResendEventType.CLICKED.value:
        delivery.click_count = (delivery.click_count or 0) + 1
        if not delivery.clicked_at:
            delivery.clicked_at = occurred_at
        return True
    return False


def _apply_status_update(delivery: EmailDelivery, update: dict[str, Any]) -> str:
    """
    Apply a mapped update, keeping the status monotonic.

    A target that is not a legal move from the current status (a late
    ``sent`` after ``delivered``, anything after a terminal status) keeps the
    current status; its timestamp is still filled in if missing.
    """
    target = update.get("status")
    current = delivery.status

    if target is None or target == current:
        for key, value in update.items():
            if key != "status":
                setattr(delivery, key, value)
        return current

    if EMAIL_DELIVERY_TRANSITIONS.is_valid_transition(current, target):
        for key, value in update.items():
            setattr(delivery, key, value)
        return target

    timestamp_field = _STATUS_TIMESTAMP_FIELDS.get(target)
    if timestamp_field and getattr(delivery, timestamp_field) is None:
        setattr(delivery, timestamp_field, update[timestamp_field])
    logger.info(
        "Resend: ignoring out-of-order %s for delivery=%s in status %s",
        target,
        delivery.id,
        current,
    )
    return current


def _is_duplicate(db: Session, event_key: str | None) -> bool:
    if not event_key:
        return False
    stmt = (
        select(WebhookEventLog.id)
        .where(
            WebhookEventLog.provider == PROVIDER,
            WebhookEventLog.event_key == event_key,
            WebhookEventLog.processed.is_(True),
        )
        .limit(1)
    )
    return db.execute(stmt).first() is not None


def process_webhook_event(
    db: Session,
    event: Mapping[str, Any],
    *,
    event_key: str | None = None,
) -> WebhookProcessingResult:
    """
    Apply one provider event to its delivery record.

    Status and timestamps are absolute values, so a replayed event converges
    to the same record. Open/click counters are only bumped the first time an
    ``event_key`` is processed.
    """
    event_type = event.get("type")
    data = event.get("data") or {}
    email_id = data.get("email_id")
    result = WebhookProcessingResult(email_id=email_id, event_type=event_type)

    try:
        delivery = db.execute(
            select(EmailDelivery).where(EmailDelivery.resend_message_id == email_id)
        ).scalar_one_or_none()
        if delivery is None:
            result.error = "Email delivery record not found"
            logger.info("Resend webhook: no delivery record for email_id=%s", email_id)
            return result

        result.delivery_record_id = delivery.id
        result.duplicate = _is_duplicate(db, event_key)

        update = map_event(event)
        if update is not None:
            result.new_status = _apply_status_update(delivery, update)
            result.processed = True
        elif event_type in (ResendEventType.OPENED.value, ResendEventType.CLICKED.value):
            if not result.duplicate:
                _apply_engagement(
                    delivery, event_type, parse_event_timestamp(event.get("created_at"))
                )
            result.new_status = delivery.status
            result.processed = True
        else:
            logger.info("Resend webhook: unhandled event type %s", event_type)

        if result.processed:
            delivery.webhook_data = dict(event)
            delivery.updated_at = utc_now()
            db.commit()

        result.success = True
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Resend webhook processing failed for email_id=%s", email_id)
        result.success = False
        result.processed = False
        result.error = str(exc)

    return result


def log_webhook_event(
    db: Session,
    event: Mapping[str, Any],
    result: WebhookProcessingResult,
    *,
    event_key: str | None = None,
    error: str | None = None,
) -> WebhookEventLog | None:
    """Write the audit row for one received event in its own commit."""
    entry = WebhookEventLog(
        provider=PROVIDER,
        event_key=event_key,
        event_type=str(event.get("type") or "unknown"),
        email_id=result.email_id,
        delivery_record_id=result.delivery_record_id,
        success=result.success,
        processed=result.processed,
        duplicate=result.duplicate,
        new_status=result.new_status,
        error=error or result.error,
        payload=dict(event),
        occurred_at=parse_event_timestamp(event.get("created_at")),
    )
    try:
        db.add(entry)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to log Resend webhook event for email_id=%s", result.email_id)
        return None
    return entry


# =============================================================================
# Monitoring
# =============================================================================


def get_webhook_statistics(db: Session, hours_back: int = 24) -> dict[str, Any]:
    """Counts of logged webhook events over the last ``hours_back`` hours."""
    since = utc_now() - timedelta(hours=hours_back)
    entries = (
        db.execute(
            select(WebhookEventLog)
            .where(WebhookEventLog.provider == PROVIDER, WebhookEventLog.received_at >= since)
            .order_by(WebhookEventLog.received_at.desc())
        )
        .scalars()
        .all()
    )

    stats: dict[str, Any] = {
        "timeframe": f"{hours_back} hours",
        "total_events": len(entries),
        "processed": 0,
        "failed": 0,
        "by_event_type": {},
        "by_status": {},
        "recent_errors": [],
    }

    for entry in entries:
        if entry.processed:
            stats["processed"] += 1
        else:
            stats["failed"] += 1

        event_type = entry.event_type or "unknown"
        stats["by_event_type"][event_type] = stats["by_event_type"].get(event_type, 0) + 1

        if entry.new_status:
            stats["by_status"][entry.new_status] = stats["by_status"].get(entry.new_status, 0) + 1

        if entry.error and len(stats["recent_errors"]) < RECENT_ERRORS_LIMIT:
            stats["recent_errors"].append(
                {
                    "received_at": entry.received_at,
                    "event_type": entry.event_type,
                    "email_id": entry.email_id,
                    "error": entry.error,
                }
            )

    return stats


def retry_failed_webhooks(db: Session, hours_back: int = 1) -> int:
    """
    Reprocess logged events that were not applied, e.g. because the delivery
    record did not exist yet. Returns how many were applied on retry.
    """
    since = utc_now() - timedelta(hours=hours_back)
    failed = (
        db.execute(
            select(WebhookEventLog)
            .where(
                WebhookEventLog.provider == PROVIDER,
                WebhookEventLog.received_at >= since,
                WebhookEventLog.processed.is_(False),
                WebhookEventLog.payload.is_not(None),
            )
            .order_by(WebhookEventLog.received_at.asc())
        )
        .scalars()
        .all()
    )

    retried = 0
    for entry in failed:
        if not isinstance(entry.payload, dict):
            continue
        result = process_webhook_event(db, entry.payload, event_key=entry.event_key)
        if not (result.success and result.processed):
            continue
        retried += 1
        entry.processed = True
        entry.success = True
        entry.new_status = result.new_status
        entry.delivery_record_id = result.delivery_record_id
        entry.error = None
        try:
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Failed to mark webhook event %s as retried", entry.id)

    if retried:
        logger.info("Resend webhook retry applied %d of %d events", retried, len(failed))
    return retried


# =============================================================================
# HTTP handler
# =============================================================================


def _parse_payload(body: bytes) -> dict[str, Any]:
    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise WebhookPayloadError("Invalid JSON payload") from exc

    if not isinstance(payload, dict) or not isinstance(payload.get("type"), str):
        raise WebhookPayloadError("Missing event type")
    data = payload.get("data")
    if not isinstance(data, dict) or not data.get("email_id"):
        raise WebhookPayloadError("Missing data.email_id")
    return payload


def _log_rejected(db: Session, body: bytes, event_key: str, error: str) -> None:
    """Audit an event refused before processing. Non-object bodies log an empty payload."""
    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        payload = None
    if not isinstance(payload, dict):
        payload = {}
    data = payload.get("data") if isinstance(payload.get("data"), dict) else {}
    email_id = data.get("email_id") if isinstance(data.get("email_id"), str) else None
    event_type = payload.get("type") if isinstance(payload.get("type"), str) else None
    log_webhook_event(
        db,
        payload,
        WebhookProcessingResult(email_id=email_id, event_type=event_type),
        event_key=event_key,
        error=error,
    )


class ResendWebhookHandler:
    async def handle(self, request: Request, db: Session, **kwargs) -> dict:
        """
        Receive a Resend delivery event.

        Security:
        - Rejects oversized bodies before parsing
        - Verifies the signature against RESEND_WEBHOOK_SECRET before any update
        - Every received event is written to the webhook audit log
        """
        body = await request.body()
        if len(body) > settings.WEBHOOK_MAX_PAYLOAD_BYTES:
            logger.warning("Resend webhook payload too large")
            raise WebhookPayloadError("Payload too large")

        headers = {k.lower(): v for k, v in request.headers.items()}
        event_key = compute_event_key(body, headers)
        secret = kwargs.get("secret", settings.RESEND_WEBHOOK_SECRET)

        if not verify_signature(body, headers, secret):
            logger.warning("Resend webhook invalid signature")
            _log_rejected(db, body, event_key, "Invalid webhook signature")
            raise WebhookSignatureError("Invalid webhook signature")

        try:
            payload = _parse_payload(body)
        except WebhookPayloadError as exc:
            logger.warning("Resend webhook rejected payload: %s", exc)
            _log_rejected(db, body, event_key, str(exc))
            raise

        result = process_webhook_event(db, payload, event_key=event_key)
        log_webhook_event(db, payload, result, event_key=event_key)

        logger.info(
            "Resend webhook %s for email_id=%s: processed=%s status=%s",
            result.event_type,
            result.email_id,
            result.processed,
            result.new_status,
        )
        return result.to_dict()
