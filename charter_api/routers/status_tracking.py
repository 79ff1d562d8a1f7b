"""Status tracking routes shared by quotes and contacts.

``build_status_router`` mounts the same endpoints for any status workflow;
``main`` includes one router per entity type.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from charter_api.core.deps import (
    RequestProvenance,
    get_admin_actor,
    get_db,
    get_request_provenance,
)
from charter_api.core.structured_logging import build_log_context
from charter_api.db.types import utc_now
from charter_api.schemas.status import (
    BulkFailureRead,
    BulkStatusChange,
    BulkStatusResponse,
    EntityStatusRead,
    InvalidTransitionDetail,
    StaleEntityRead,
    StatusChangeEventRead,
    StatusChangeRequest,
    StatusHistogramResponse,
    StatusUpdateResponse,
)
from charter_api.services.status_tracking_service import (
    EntityNotFoundError,
    EntityWithStatus,
    EventStoreError,
    InvalidTransitionError,
    StatusConflictError,
    StatusTrackingEngine,
)
from charter_api.utils.pagination import PaginatedResponse, PaginationParams, get_pagination

logger = logging.getLogger(__name__)


def _to_http_exception(exc: Exception) -> HTTPException:
    """Map engine errors onto HTTP status codes."""
    if isinstance(exc, InvalidTransitionError):
        detail = InvalidTransitionDetail(
            message=str(exc),
            current_status=exc.from_status,
            attempted_status=exc.to_status,
            valid_transitions=exc.allowed,
        )
        return HTTPException(status_code=400, detail=detail.model_dump())
    if isinstance(exc, EntityNotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, StatusConflictError):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, ValueError):
        return HTTPException(status_code=400, detail=str(exc))
    return HTTPException(status_code=500, detail="Failed to update status")


def build_status_router(engine: StatusTrackingEngine, entity_schema: type[BaseModel]) -> APIRouter:
    """Create the admin status endpoints for one workflow."""
    router = APIRouter()
    workflow = engine.workflow
    entity_type = workflow.entity_type

    EntityRead = EntityStatusRead[entity_schema]
    StaleRead = StaleEntityRead[entity_schema]
    EntityPage = PaginatedResponse[EntityRead]

    def _to_read(item: EntityWithStatus) -> BaseModel:
        return EntityRead(
            entity=entity_schema.model_validate(item.entity),
            current_status=item.current_status,
            available_actions=engine.get_available_actions(item.current_status),
            is_terminal=workflow.transitions.is_terminal(item.current_status),
            history=[StatusChangeEventRead.model_validate(e) for e in item.history],
        )

    @router.get("", response_model=EntityPage)
    def list_entities(
        status: str | None = Query(None, description="Filter by current status"),
        pagination: PaginationParams = Depends(get_pagination),
        db: Session = Depends(get_db),
    ):
        """List entities newest first, optionally filtered by current status."""
        try:
            items, total = engine.list_by_status(
                db, status, limit=pagination.per_page, offset=pagination.offset
            )
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return EntityPage.create([_to_read(item) for item in items], total, pagination)

    @router.get("/stats", response_model=StatusHistogramResponse)
    def get_status_stats(db: Session = Depends(get_db)):
        """Count of entities per status, zeros included."""
        try:
            counts = engine.status_histogram(db)
        except EventStoreError as e:
            logger.exception(
                "Status histogram failed", extra=build_log_context(entity_type=entity_type)
            )
            raise _to_http_exception(e)
        return StatusHistogramResponse(counts=counts, total=sum(counts.values()))

    @router.get("/stale", response_model=list[StaleRead])
    def list_stale(
        days: int | None = Query(None, ge=0, le=365, description="Age threshold in days"),
        db: Session = Depends(get_db),
    ):
        """Entities still in an early stage after ``days`` days, oldest first."""
        now = utc_now()
        return [
            StaleRead(
                entity=entity_schema.model_validate(item.entity),
                current_status=item.current_status,
                days_open=(now - item.entity.created_at).days,
                history=[StatusChangeEventRead.model_validate(e) for e in item.history],
            )
            for item in engine.find_stale(db, days)
        ]

    @router.get("/{entity_id:uuid}/status", response_model=EntityRead)
    def get_status(entity_id: UUID, db: Session = Depends(get_db)):
        """Current status, history and available actions."""
        try:
            item = engine.get_entity_with_status(db, entity_id)
        except EntityNotFoundError as e:
            raise _to_http_exception(e)
        return _to_read(item)

    @router.patch("/{entity_id:uuid}/status", response_model=StatusUpdateResponse)
    def change_status(
        entity_id: UUID,
        data: StatusChangeRequest,
        actor: str = Depends(get_admin_actor),
        provenance: RequestProvenance = Depends(get_request_provenance),
        db: Session = Depends(get_db),
    ):
        """Change status (validates the transition and records history)."""
        try:
            event = engine.update_status(
                db,
                entity_id,
                data.status,
                actor,
                data.note,
                ip_address=provenance.ip_address,
                user_agent=provenance.user_agent,
            )
        except (InvalidTransitionError, EntityNotFoundError, StatusConflictError, ValueError) as e:
            logger.info(
                "Status change rejected: %s",
                e,
                extra=build_log_context(
                    entity_type=entity_type,
                    entity_id=str(entity_id),
                    actor=actor,
                    route=f"/{entity_type}s/{{id}}/status",
                    method="PATCH",
                ),
            )
            raise _to_http_exception(e)
        except EventStoreError as e:
            logger.exception(
                "Status change failed",
                extra=build_log_context(
                    entity_type=entity_type, entity_id=str(entity_id), actor=actor
                ),
            )
            raise _to_http_exception(e)

        return StatusUpdateResponse(
            id=entity_id,
            previous_status=event.from_status,
            current_status=event.to_status,
            event=StatusChangeEventRead.model_validate(event),
        )

    @router.post("/bulk-status", response_model=BulkStatusResponse)
    def bulk_change_status(
        data: BulkStatusChange,
        actor: str = Depends(get_admin_actor),
        provenance: RequestProvenance = Depends(get_request_provenance),
        db: Session = Depends(get_db),
    ):
        """Apply one status to many entities; failures are reported per id."""
        try:
            result = engine.bulk_update_status(
                db,
                data.ids,
                data.status,
                actor,
                data.note,
                ip_address=provenance.ip_address,
                user_agent=provenance.user_agent,
            )
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

        return BulkStatusResponse(
            updated_count=result.updated_count,
            failed_count=result.failed_count,
            failed=[BulkFailureRead(id=f.entity_id, reason=f.reason) for f in result.failed],
        )

    return router
