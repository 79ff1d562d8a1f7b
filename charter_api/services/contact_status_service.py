"""Contact submission status workflow."""

from charter_api.core.status_rules import CONTACT_EARLY_STATUSES, CONTACT_TRANSITIONS
from charter_api.db.enums import ContactStatus, DEFAULT_CONTACT_STATUS, EntityType, EventStream
from charter_api.db.models import ContactSubmission
from charter_api.services.status_tracking_service import StatusTrackingEngine, StatusWorkflow

CONTACT_WORKFLOW = StatusWorkflow(
    entity_type=EntityType.CONTACT.value,
    stream=EventStream.CONTACT_STATUS_CHANGE.value,
    statuses=ContactStatus,
    transitions=CONTACT_TRANSITIONS,
    default_status=DEFAULT_CONTACT_STATUS.value,
    early_statuses=CONTACT_EARLY_STATUSES,
    model=ContactSubmission,
)

engine = StatusTrackingEngine(CONTACT_WORKFLOW)

update_status = engine.update_status
bulk_update_status = engine.bulk_update_status
get_current_status = engine.get_current_status
get_history = engine.get_history
get_available_actions = engine.get_available_actions
get_entity_with_status = engine.get_entity_with_status
list_by_status = engine.list_by_status
find_stale = engine.find_stale
status_histogram = engine.status_histogram
