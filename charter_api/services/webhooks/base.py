"""Webhook handler interface."""

from __future__ import annotations

from typing import Protocol

from fastapi import Request
from sqlalchemy.orm import Session


class WebhookHandler(Protocol):
    async def handle(self, request: Request, db: Session, **kwargs) -> dict:
        """Verify, apply and audit one inbound provider event."""
