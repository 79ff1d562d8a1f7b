"""Tests for stale detection and status histograms."""

import uuid
from datetime import datetime, timedelta, timezone

from charter_api.db.models import StatusChangeEvent
from charter_api.services import contact_status_service, quote_status_service
from charter_api.services.event_store import SqlAlchemyEventStore

ADMIN = "ops@flyfleet.test"


def _days_ago(days: int) -> datetime:
    return datetime.now(timezone.utc) - timedelta(days=days)


def test_find_stale_returns_old_early_stage_quotes(db, create_quote):
    oldest = create_quote(created_at=_days_ago(20))
    old_reviewing = create_quote(created_at=_days_ago(10))
    old_confirmed = create_quote(created_at=_days_ago(12))
    create_quote(created_at=_days_ago(2))
    quote_status_service.update_status(db, old_reviewing.id, "reviewing", ADMIN)
    quote_status_service.update_status(db, old_confirmed.id, "confirmed", ADMIN)

    stale = quote_status_service.find_stale(db, 7)

    assert [s.entity.id for s in stale] == [oldest.id, old_reviewing.id]
    assert stale[0].current_status == "new_request"
    assert stale[0].history == []
    assert [e.to_status for e in stale[1].history] == ["reviewing"]


def test_find_stale_threshold_is_configurable(db, create_quote):
    quote = create_quote(created_at=_days_ago(3))

    assert quote_status_service.find_stale(db, 7) == []
    assert [s.entity.id for s in quote_status_service.find_stale(db, 1)] == [quote.id]


def test_find_stale_defaults_to_settings_threshold(db, create_quote):
    quote = create_quote(created_at=_days_ago(8))
    create_quote(created_at=_days_ago(6))

    assert [s.entity.id for s in quote_status_service.find_stale(db)] == [quote.id]


def test_find_stale_contacts(db, create_contact):
    pending = create_contact(created_at=_days_ago(9))
    responded = create_contact(created_at=_days_ago(9))
    contact_status_service.update_status(db, responded.id, "responded", ADMIN)

    stale = contact_status_service.find_stale(db, 7)

    assert [s.entity.id for s in stale] == [pending.id]


def test_histogram_includes_every_status(db):
    histogram = quote_status_service.status_histogram(db)

    assert set(histogram) == {
        "new_request",
        "reviewing",
        "quote_sent",
        "awaiting_confirmation",
        "confirmed",
        "payment_pending",
        "paid",
        "completed",
        "cancelled",
    }
    assert all(count == 0 for count in histogram.values())


def test_histogram_counts_each_entity_once(db, create_quote):
    quotes = [create_quote() for _ in range(5)]
    quote_status_service.update_status(db, quotes[0].id, "reviewing", ADMIN)
    quote_status_service.update_status(db, quotes[0].id, "quote_sent", ADMIN)
    quote_status_service.update_status(db, quotes[1].id, "quote_sent", ADMIN)
    quote_status_service.update_status(db, quotes[2].id, "cancelled", ADMIN)

    histogram = quote_status_service.status_histogram(db)

    assert histogram["new_request"] == 2
    assert histogram["quote_sent"] == 2
    assert histogram["cancelled"] == 1
    assert histogram["reviewing"] == 0
    assert sum(histogram.values()) == len(quotes)


def test_histogram_ignores_events_without_entity(db, create_contact):
    create_contact()
    SqlAlchemyEventStore(db, "contact_status_change").append(
        StatusChangeEvent(
            entity_id=uuid.uuid4(), from_status="pending", to_status="closed", actor=ADMIN
        ),
        expected_sequence=0,
    )

    histogram = contact_status_service.status_histogram(db)

    assert histogram == {"pending": 1, "responded": 0, "closed": 0}
