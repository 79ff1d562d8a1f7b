"""FastAPI dependencies for the admin API."""

from collections.abc import Generator
from dataclasses import dataclass

from fastapi import Request
from sqlalchemy.orm import Session

from charter_api.core.config import settings
from charter_api.db.session import SessionLocal

ADMIN_ACTOR_HEADER = "x-admin-email"


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_admin_actor(request: Request) -> str:
    """
    Acting admin identity for audit records.

    Authentication happens upstream; the authenticated admin's email arrives
    in ``X-Admin-Email``.
    """
    actor = request.headers.get(ADMIN_ACTOR_HEADER, "").strip()
    return actor[:255] if actor else settings.DEFAULT_ADMIN_ACTOR


def get_client_ip(request: Request | None) -> str | None:
    """
    Extract client IP from request.

    Only trusts X-Forwarded-For when TRUST_PROXY_HEADERS=True (behind reverse proxy).
    """
    if not request:
        return None

    if settings.TRUST_PROXY_HEADERS:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            # X-Forwarded-For: client, proxy1, proxy2 - take first
            return forwarded.split(",")[0].strip()[:64]

    if request.client:
        return request.client.host

    return None


def get_user_agent(request: Request | None) -> str | None:
    if not request:
        return None
    ua = request.headers.get("user-agent", "")
    # Truncate to 500 chars (DB limit)
    return ua[:500] if ua else None


@dataclass(frozen=True)
class RequestProvenance:
    ip_address: str | None
    user_agent: str | None


def get_request_provenance(request: Request) -> RequestProvenance:
    return RequestProvenance(
        ip_address=get_client_ip(request),
        user_agent=get_user_agent(request),
    )
