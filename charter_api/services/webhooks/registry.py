"""Webhook handler registry."""

from __future__ import annotations

from charter_api.services.webhooks.base import WebhookHandler
from charter_api.services.webhooks.resend import ResendWebhookHandler

_HANDLERS: dict[str, WebhookHandler] = {
    "resend": ResendWebhookHandler(),
}


def get_handler(name: str) -> WebhookHandler:
    handler = _HANDLERS.get(name)
    if not handler:
        raise KeyError(f"Unknown webhook handler: {name}")
    return handler
