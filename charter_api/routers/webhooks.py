"""Webhooks router - provider delivery callbacks."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from charter_api.core.deps import get_db
from charter_api.schemas.email import (
    WebhookProcessingResponse,
    WebhookRetryResponse,
    WebhookStatistics,
)
from charter_api.services.webhooks import resend
from charter_api.services.webhooks.registry import get_handler

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/resend/stats", response_model=WebhookStatistics)
def get_resend_webhook_stats(
    hours: int = Query(24, ge=1, le=24 * 30),
    db: Session = Depends(get_db),
):
    """Webhook ingestion counts for monitoring."""
    return resend.get_webhook_statistics(db, hours_back=hours)


@router.post("/resend/retry", response_model=WebhookRetryResponse)
def retry_resend_webhooks(
    hours: int = Query(1, ge=1, le=24 * 7),
    db: Session = Depends(get_db),
):
    """Reprocess events logged as unprocessed in the last ``hours`` hours."""
    return WebhookRetryResponse(retried=resend.retry_failed_webhooks(db, hours_back=hours))


@router.post("/{provider}", response_model=WebhookProcessingResponse)
async def receive_webhook(
    provider: str,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Receive a provider delivery event.

    Security:
    - Validates the HMAC signature before any state change
    - Validates payload size

    Returns 200 with ``processed=false`` when the event references an
    unknown delivery record, so the provider does not retry forever.
    """
    try:
        handler = get_handler(provider)
    except KeyError:
        raise HTTPException(status_code=404, detail="Unknown webhook provider")

    try:
        return await handler.handle(request, db)
    except resend.WebhookSignatureError as e:
        raise HTTPException(status_code=401, detail=str(e))
    except resend.WebhookPayloadError as e:
        logger.warning("Rejected %s webhook payload: %s", provider, e)
        raise HTTPException(status_code=400, detail=str(e))
