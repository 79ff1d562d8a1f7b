"""Pydantic schemas for quote requests."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel


class QuoteRequestRead(BaseModel):
    """Quote request as shown to admins."""

    id: UUID
    service_type: str
    full_name: str
    email: str
    phone: str | None
    passengers: int
    origin: str
    destination: str
    departure_date: date
    departure_time: str | None
    additional_info: str | None
    locale: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
