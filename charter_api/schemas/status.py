"""Pydantic schemas for status tracking endpoints."""

from datetime import datetime
from typing import Generic, TypeVar
from uuid import UUID

from pydantic import BaseModel, Field

EntityT = TypeVar("EntityT")


class StatusChangeRequest(BaseModel):
    """Request to move an entity to a new status."""

    status: str = Field(..., min_length=1, max_length=50)
    note: str | None = Field(None, max_length=1000)


class BulkStatusChange(BaseModel):
    """Request schema for bulk status changes."""

    ids: list[UUID] = Field(..., min_length=1, max_length=100)
    status: str = Field(..., min_length=1, max_length=50)
    note: str | None = Field(None, max_length=1000)


class StatusChangeEventRead(BaseModel):
    """Status history entry response."""

    id: UUID
    from_status: str
    to_status: str
    actor: str
    note: str | None
    occurred_at: datetime
    ip_address: str | None = None
    user_agent: str | None = None

    model_config = {"from_attributes": True}


class InvalidTransitionDetail(BaseModel):
    message: str
    current_status: str
    attempted_status: str
    valid_transitions: list[str]


class EntityStatusRead(BaseModel, Generic[EntityT]):
    """Entity with its projected status and full history."""

    entity: EntityT
    current_status: str
    available_actions: list[str]
    is_terminal: bool
    history: list[StatusChangeEventRead]


class StaleEntityRead(BaseModel, Generic[EntityT]):
    entity: EntityT
    current_status: str
    days_open: int
    history: list[StatusChangeEventRead]


class StatusUpdateResponse(BaseModel):
    """Result of a single status change."""

    id: UUID
    previous_status: str
    current_status: str
    event: StatusChangeEventRead


class BulkFailureRead(BaseModel):
    id: UUID
    reason: str


class BulkStatusResponse(BaseModel):
    """Response for bulk status change."""

    updated_count: int
    failed_count: int
    failed: list[BulkFailureRead] = []


class StatusHistogramResponse(BaseModel):
    counts: dict[str, int]
    total: int
