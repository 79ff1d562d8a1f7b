"""Quote request status workflow."""

from charter_api.core.status_rules import QUOTE_EARLY_STATUSES, QUOTE_TRANSITIONS
from charter_api.db.enums import DEFAULT_QUOTE_STATUS, EntityType, EventStream, QuoteStatus
from charter_api.db.models import QuoteRequest
from charter_api.services.status_tracking_service import StatusTrackingEngine, StatusWorkflow

QUOTE_WORKFLOW = StatusWorkflow(
    entity_type=EntityType.QUOTE.value,
    stream=EventStream.QUOTE_STATUS_CHANGE.value,
    statuses=QuoteStatus,
    transitions=QUOTE_TRANSITIONS,
    default_status=DEFAULT_QUOTE_STATUS.value,
    early_statuses=QUOTE_EARLY_STATUSES,
    model=QuoteRequest,
)

engine = StatusTrackingEngine(QUOTE_WORKFLOW)

update_status = engine.update_status
bulk_update_status = engine.bulk_update_status
get_current_status = engine.get_current_status
get_history = engine.get_history
get_available_actions = engine.get_available_actions
get_entity_with_status = engine.get_entity_with_status
list_by_status = engine.list_by_status
find_stale = engine.find_stale
status_histogram = engine.status_histogram
