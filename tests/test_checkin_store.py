# tests/test_checkin_store.py

from __future__ import annotations

from datetime import timedelta

import pytest

from dev_coach.checkins.checkin_models import CheckinStatus
from dev_coach.checkins.checkin_store import CheckinStore
from dev_coach.config_store import ConfigStore
from dev_coach.core.errors import NotFoundError, ValidationError

from .fakes import FakeClock


def test_create_always_schedules(checkin_store: CheckinStore, clock: FakeClock) -> None:
    due = clock.now + timedelta(hours=1)
    c = checkin_store.create(due, "Review PR", status=CheckinStatus.COMPLETED)

    assert c.id > 0
    assert c.status is CheckinStatus.SCHEDULED
    assert c.description == "Review PR"
    assert c.scheduled_at == due
    assert c.scheduled_at.tzinfo is not None
    assert c.last_triggered_at is None
    assert c.completed_at is None


def test_blank_description_is_stored_as_none(checkin_store: CheckinStore, clock: FakeClock) -> None:
    c = checkin_store.create(clock.now + timedelta(minutes=5), "   ")
    assert c.description is None


def test_times_are_returned_in_configured_zone(
    checkin_store: CheckinStore, config_store: ConfigStore, clock: FakeClock
) -> None:
    c = checkin_store.create(clock.now + timedelta(hours=2))
    assert checkin_store.get(c.id).scheduled_at.hour == 12  # New York

    config_store.set("timezone", "Europe/Berlin")
    again = checkin_store.get(c.id)
    assert again.scheduled_at.hour == 18
    assert again.scheduled_at == c.scheduled_at


def test_list_by_status_orders_by_due_time(checkin_store: CheckinStore, clock: FakeClock) -> None:
    late = checkin_store.create(clock.now + timedelta(hours=3), "late")
    early = checkin_store.create(clock.now + timedelta(hours=1), "early")
    checkin_store.update(late.id, status=CheckinStatus.CANCELLED)
    mid = checkin_store.create(clock.now + timedelta(hours=2), "mid")

    scheduled = checkin_store.list_by_status(CheckinStatus.SCHEDULED)
    assert [c.id for c in scheduled] == [early.id, mid.id]
    assert [c.id for c in checkin_store.list_by_status("CANCELLED")] == [late.id]
    assert len(checkin_store.list_all()) == 3


def test_update_rejects_invalid_status_without_writing(checkin_store: CheckinStore, clock: FakeClock) -> None:
    c = checkin_store.create(clock.now + timedelta(hours=1), "x")

    with pytest.raises(ValidationError):
        checkin_store.update(c.id, status="DONE", description="changed")

    after = checkin_store.get(c.id)
    assert after.status is CheckinStatus.SCHEDULED
    assert after.description == "x"


def test_update_rejects_unknown_fields(checkin_store: CheckinStore, clock: FakeClock) -> None:
    c = checkin_store.create(clock.now + timedelta(hours=1))
    with pytest.raises(ValidationError):
        checkin_store.update(c.id, colour="red")


def test_update_sets_completion_fields(checkin_store: CheckinStore, clock: FakeClock) -> None:
    c = checkin_store.create(clock.now + timedelta(minutes=1))
    fired = clock.advance(minutes=1)

    done = checkin_store.update(c.id, status=CheckinStatus.COMPLETED, last_triggered_at=fired, completed_at=fired)
    assert done.status is CheckinStatus.COMPLETED
    assert done.last_triggered_at == fired
    assert done.completed_at == fired


def test_missing_ids_raise_not_found(checkin_store: CheckinStore) -> None:
    with pytest.raises(NotFoundError):
        checkin_store.get(404)
    with pytest.raises(NotFoundError):
        checkin_store.update(404, status=CheckinStatus.CANCELLED)
    with pytest.raises(NotFoundError):
        checkin_store.delete(404)


def test_delete_removes_row(checkin_store: CheckinStore, clock: FakeClock) -> None:
    c = checkin_store.create(clock.now + timedelta(hours=1))
    checkin_store.delete(c.id)
    with pytest.raises(NotFoundError):
        checkin_store.get(c.id)
    assert checkin_store.count() == 0


def test_overdue_sweep_skips_only_past_scheduled(checkin_store: CheckinStore, clock: FakeClock) -> None:
    past = checkin_store.create(clock.now - timedelta(minutes=10), "past")
    due_now = checkin_store.create(clock.now, "now")
    future = checkin_store.create(clock.now + timedelta(minutes=10), "future")
    old_done = checkin_store.create(clock.now - timedelta(hours=1), "done")
    checkin_store.update(old_done.id, status=CheckinStatus.COMPLETED)

    n = checkin_store.mark_overdue_scheduled_as_skipped(clock.now)

    assert n == 1
    assert checkin_store.get(past.id).status is CheckinStatus.SKIPPED
    assert checkin_store.get(due_now.id).status is CheckinStatus.SCHEDULED
    assert checkin_store.get(future.id).status is CheckinStatus.SCHEDULED
    assert checkin_store.get(old_done.id).status is CheckinStatus.COMPLETED


def test_records_survive_reopening(settings, checkin_store: CheckinStore, boundary, clock: FakeClock) -> None:
    c = checkin_store.create(clock.now + timedelta(hours=1), "persisted")
    reopened = CheckinStore(settings.db_path, boundary=boundary)
    assert reopened.get(c.id).description == "persisted"
