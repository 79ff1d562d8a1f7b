"""Structured logging helpers for status tracking and webhook ingestion."""

from typing import Any


def build_log_context(
    *,
    entity_type: str | None = None,
    entity_id: str | None = None,
    actor: str | None = None,
    request_id: str | None = None,
    route: str | None = None,
    method: str | None = None,
) -> dict[str, Any]:
    """Return a log context dict for ``extra=``, dropping empty values.

    Admin email addresses are logged only through ``actor``; payload bodies and
    recipient addresses never go into the context.
    """
    context: dict[str, Any] = {}
    if entity_type:
        context["entity_type"] = entity_type
    if entity_id:
        context["entity_id"] = str(entity_id)
    if actor:
        context["actor"] = actor
    if request_id:
        context["request_id"] = request_id
    if route:
        context["route"] = route
    if method:
        context["method"] = method
    return context
