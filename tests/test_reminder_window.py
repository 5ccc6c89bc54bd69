"""Tests for the reminder window calculator."""
from __future__ import annotations

from datetime import date, datetime, time, timezone

import pytest
import pytz

from salonbook.errors import ConfigurationError, InvalidReminderType
from salonbook.reminders.window import (business_now, compute_reminder_window,
                                        validate_reminder_type)

SAO_PAULO = pytz.timezone("America/Sao_Paulo")


def local(*args) -> datetime:
    return SAO_PAULO.localize(datetime(*args))


def test_24h_window_targets_next_day_with_one_hour_margin() -> None:
    window = compute_reminder_window(local(2024, 3, 10, 8, 0), "24h")

    assert window.target_date == date(2024, 3, 11)
    assert window.lower_time == time(7, 0)
    assert window.upper_time == time(9, 0)


def test_1h_window_targets_next_hour() -> None:
    window = compute_reminder_window(local(2024, 3, 10, 8, 0), "1h")

    assert window == (date(2024, 3, 10), time(8, 0), time(10, 0))


def test_now_is_converted_to_business_timezone() -> None:
    # 11:00 UTC is 08:00 in São Paulo (UTC-3).
    now = datetime(2024, 3, 10, 11, 0, tzinfo=timezone.utc)

    window = compute_reminder_window(now, "24h")

    assert window == (date(2024, 3, 11), time(7, 0), time(9, 0))


def test_seconds_are_truncated() -> None:
    window = compute_reminder_window(local(2024, 3, 10, 8, 0, 45), "24h")

    assert window.lower_time == time(7, 0)
    assert window.upper_time == time(9, 0)


def test_lower_bound_is_clamped_at_midnight() -> None:
    window = compute_reminder_window(local(2024, 3, 10, 23, 30), "1h")

    assert window.target_date == date(2024, 3, 11)
    assert window.lower_time == time(0, 0)
    assert window.upper_time == time(1, 30)


def test_upper_bound_is_clamped_before_midnight() -> None:
    window = compute_reminder_window(local(2024, 3, 10, 22, 30), "1h")

    assert window.target_date == date(2024, 3, 10)
    assert window.lower_time == time(22, 30)
    assert window.upper_time == time(23, 59)


def test_lead_time_is_wall_clock_across_dst_change() -> None:
    new_york = pytz.timezone("America/New_York")
    # Clocks jump forward at 02:00 on 2024-03-10.
    now = new_york.localize(datetime(2024, 3, 9, 8, 0))

    window = compute_reminder_window(now, "24h", tz_name="America/New_York")

    assert window == (date(2024, 3, 10), time(7, 0), time(9, 0))


def test_describe_formats_window() -> None:
    window = compute_reminder_window(local(2024, 3, 10, 8, 0), "24h")

    assert window.describe() == "2024-03-11 [07:00, 09:00]"


@pytest.mark.parametrize("reminder_type", ["2h", "", None, "24H"])
def test_invalid_type_is_a_configuration_error(reminder_type) -> None:
    with pytest.raises(InvalidReminderType) as excinfo:
        compute_reminder_window(local(2024, 3, 10, 8, 0), reminder_type)

    assert isinstance(excinfo.value, ConfigurationError)
    with pytest.raises(InvalidReminderType):
        validate_reminder_type(reminder_type)


def test_naive_now_is_rejected() -> None:
    with pytest.raises(ValueError):
        compute_reminder_window(datetime(2024, 3, 10, 8, 0), "24h")


def test_business_now_is_aware() -> None:
    now = business_now()

    assert now.tzinfo is not None
    assert now.tzinfo.zone == "America/Sao_Paulo"
