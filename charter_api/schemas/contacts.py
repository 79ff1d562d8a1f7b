"""Pydantic schemas for contact submissions."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class ContactSubmissionRead(BaseModel):
    id: UUID
    full_name: str
    email: str
    phone: str | None
    subject: str | None
    message: str
    contact_via_whatsapp: bool
    locale: str
    created_at: datetime

    model_config = {"from_attributes": True}
