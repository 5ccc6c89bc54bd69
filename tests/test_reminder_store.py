"""Tests for the confirmed-in-window scheduling query."""
from __future__ import annotations

from datetime import date, time

from sqlalchemy import inspect

from salonbook.reminders.store import (find_confirmed_in_window,
                                       record_reminder_sent,
                                       reminder_already_sent)

TARGET = date(2024, 3, 11)


def ids(rows) -> list[int]:
    return [row.scheduling_id for row in rows]


def test_only_confirmed_schedulings_are_selected(app, add_scheduling) -> None:
    confirmed = add_scheduling(TARGET, time(8, 0), status="confirmed")
    add_scheduling(TARGET, time(8, 0), status="pending")
    add_scheduling(TARGET, time(8, 0), status="cancelled")
    add_scheduling(TARGET, time(8, 0), status="completed")

    with app.app_context():
        rows = find_confirmed_in_window(TARGET, time(7, 0), time(9, 0))

    assert ids(rows) == [confirmed]


def test_bounds_are_inclusive(app, add_scheduling) -> None:
    at_lower = add_scheduling(TARGET, time(7, 0))
    at_upper = add_scheduling(TARGET, time(9, 0))

    with app.app_context():
        rows = find_confirmed_in_window(TARGET, time(7, 0), time(9, 0))

    assert ids(rows) == [at_lower, at_upper]


def test_one_minute_outside_the_band_is_excluded(app, add_scheduling) -> None:
    add_scheduling(TARGET, time(6, 59))
    add_scheduling(TARGET, time(9, 1))
    inside = add_scheduling(TARGET, time(8, 30))

    with app.app_context():
        rows = find_confirmed_in_window(TARGET, time(7, 0), time(9, 0))

    assert ids(rows) == [inside]


def test_other_dates_are_excluded(app, add_scheduling) -> None:
    add_scheduling(date(2024, 3, 10), time(8, 0))
    add_scheduling(date(2024, 3, 12), time(8, 0))

    with app.app_context():
        rows = find_confirmed_in_window(TARGET, time(7, 0), time(9, 0))

    assert rows == []


def test_results_are_ordered_by_time(app, add_scheduling) -> None:
    late = add_scheduling(TARGET, time(8, 45))
    early = add_scheduling(TARGET, time(7, 15))

    with app.app_context():
        rows = find_confirmed_in_window(TARGET, time(7, 0), time(9, 0))

    assert ids(rows) == [early, late]


def test_service_establishment_and_owner_are_eager_loaded(app, seed, add_scheduling) -> None:
    add_scheduling(TARGET, time(8, 0))

    with app.app_context():
        (row,) = find_confirmed_in_window(TARGET, time(7, 0), time(9, 0))

        assert "service" not in inspect(row).unloaded
        assert "establishment" not in inspect(row).unloaded
        assert "owner" not in inspect(row.establishment).unloaded
        assert row.service.name == "Corte"
        assert row.establishment.owner.user_id == seed.owner_id


def test_reminder_ledger_round_trip(app, seed, add_scheduling) -> None:
    scheduling_id = add_scheduling(TARGET, time(8, 0))

    with app.app_context():
        assert not reminder_already_sent(scheduling_id, "24h")

        record_reminder_sent(scheduling_id, "24h", seed.owner_id)

        assert reminder_already_sent(scheduling_id, "24h")
        assert not reminder_already_sent(scheduling_id, "1h")
