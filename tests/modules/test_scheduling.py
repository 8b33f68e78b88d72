# tests/modules/test_scheduling.py
from datetime import date, datetime, time, timedelta, timezone
from types import SimpleNamespace
from zoneinfo import ZoneInfo

import pytest

from clinic.modules.appointments.scheduling import (
    CancellationNotAllowed,
    InvalidAppointmentTime,
    OutsideWorkingHours,
    add_months,
    check_cancellable,
    day_bounds,
    generate_slots,
    intervals_overlap,
    to_utc,
    validate_appointment_times,
    validate_within_working_hours,
)

UTC = timezone.utc
MONDAY = date(2026, 10, 19)
SATURDAY = date(2026, 10, 24)
NOW = datetime(2026, 10, 18, 12, 0, tzinfo=UTC)


def weekday_doctor(**overrides):
    values = dict(
        available_days=["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"],
        start_time=time(9, 0),
        end_time=time(17, 0),
        appointment_duration=30,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def at(day: date, hour: int, minute: int = 0) -> datetime:
    return datetime.combine(day, time(hour, minute), tzinfo=UTC)


def test_slots_on_a_day_off_are_empty() -> None:
    assert generate_slots(weekday_doctor(), SATURDAY, tz=UTC) == []


def test_monday_has_sixteen_half_hour_slots() -> None:
    slots = generate_slots(weekday_doctor(), MONDAY, tz=UTC)

    assert len(slots) == 16
    assert slots[0].start == at(MONDAY, 9)
    assert slots[-1].end == at(MONDAY, 17)
    assert all(b.start == a.end for a, b in zip(slots, slots[1:]))
    assert all(s.available for s in slots)


def test_slot_that_would_overrun_the_window_is_dropped() -> None:
    slots = generate_slots(weekday_doctor(appointment_duration=45), MONDAY, tz=UTC)

    # 8 hours / 45 minutes -> 10 full slots, the 11th would end at 17:15
    assert len(slots) == 10
    assert slots[-1].end == at(MONDAY, 16, 30)


def test_booked_intervals_mark_overlapping_slots_unavailable() -> None:
    booked = [(at(MONDAY, 10), at(MONDAY, 11)), (at(MONDAY, 13, 15), at(MONDAY, 13, 45))]
    slots = {s.start.strftime("%H:%M"): s.available for s in generate_slots(weekday_doctor(), MONDAY, booked, UTC)}

    assert slots["09:30"] is True
    assert slots["10:00"] is False
    assert slots["10:30"] is False
    assert slots["11:00"] is True
    assert slots["13:00"] is False
    assert slots["13:30"] is False
    assert slots["14:00"] is True


def test_booked_intervals_read_back_without_tzinfo_are_treated_as_utc() -> None:
    naive = [(datetime(2026, 10, 19, 9, 0), datetime(2026, 10, 19, 9, 30))]
    slots = generate_slots(weekday_doctor(), MONDAY, naive, UTC)

    assert slots[0].available is False
    assert slots[1].available is True


def test_slots_use_clinic_timezone() -> None:
    tz = ZoneInfo("America/New_York")
    slots = generate_slots(weekday_doctor(), MONDAY, tz=tz)

    assert slots[0].start.tzinfo == tz
    # 09:00 EDT
    assert to_utc(slots[0].start) == datetime(2026, 10, 19, 13, 0, tzinfo=UTC)


def test_intervals_touching_at_the_edge_do_not_overlap() -> None:
    assert not intervals_overlap(at(MONDAY, 9), at(MONDAY, 10), at(MONDAY, 10), at(MONDAY, 11))
    assert intervals_overlap(at(MONDAY, 9), at(MONDAY, 10, 1), at(MONDAY, 10), at(MONDAY, 11))
    assert intervals_overlap(at(MONDAY, 9), at(MONDAY, 12), at(MONDAY, 10), at(MONDAY, 11))


def test_to_utc_reads_naive_values_as_local_time() -> None:
    tz = ZoneInfo("Europe/Berlin")
    assert to_utc(datetime(2026, 10, 19, 10, 0), tz) == datetime(2026, 10, 19, 8, 0, tzinfo=UTC)
    aware = datetime(2026, 10, 19, 10, 0, tzinfo=UTC)
    assert to_utc(aware, tz) == aware


def test_day_bounds_span_one_local_day() -> None:
    start, end = day_bounds(MONDAY, ZoneInfo("Europe/Berlin"))

    assert start == datetime(2026, 10, 18, 22, 0, tzinfo=UTC)
    assert end - start == timedelta(hours=24)


@pytest.mark.parametrize(
    ("value", "months", "expected"),
    [
        (datetime(2026, 1, 15), 6, datetime(2026, 7, 15)),
        (datetime(2026, 8, 31), 6, datetime(2027, 2, 28)),
        (datetime(2027, 8, 31), 6, datetime(2028, 2, 29)),
        (datetime(2026, 12, 1), 1, datetime(2027, 1, 1)),
    ],
)
def test_add_months_clamps_day(value: datetime, months: int, expected: datetime) -> None:
    assert add_months(value, months) == expected


def test_valid_times_pass() -> None:
    validate_appointment_times(at(MONDAY, 10), at(MONDAY, 10, 30), NOW)


@pytest.mark.parametrize(
    ("start", "end", "detail"),
    [
        (at(MONDAY, 10), at(MONDAY, 10), "Start time must be before end time"),
        (at(MONDAY, 11), at(MONDAY, 10), "Start time must be before end time"),
        (NOW - timedelta(hours=1), NOW + timedelta(hours=1), "Cannot schedule appointments in the past"),
        # a past start is reported before an inverted range
        (NOW - timedelta(hours=1), NOW - timedelta(hours=2), "Cannot schedule appointments in the past"),
        (
            NOW + timedelta(days=200),
            NOW + timedelta(days=200, minutes=30),
            "Cannot schedule appointments more than 6 months in advance",
        ),
        (at(MONDAY, 10), at(MONDAY, 10, 10), "Appointment must be at least 15 minutes long"),
        (at(MONDAY, 9), at(MONDAY, 12, 30), "Appointment cannot be longer than 3 hours"),
    ],
)
def test_invalid_times_are_rejected(start: datetime, end: datetime, detail: str) -> None:
    with pytest.raises(InvalidAppointmentTime) as exc_info:
        validate_appointment_times(start, end, NOW)

    assert exc_info.value.detail == detail
    assert exc_info.value.status_code == 400


def test_duration_bounds_are_inclusive() -> None:
    validate_appointment_times(at(MONDAY, 10), at(MONDAY, 10, 15), NOW)
    validate_appointment_times(at(MONDAY, 9), at(MONDAY, 12), NOW)


def test_working_hours_accept_interval_inside_window() -> None:
    validate_within_working_hours(weekday_doctor(), at(MONDAY, 9), at(MONDAY, 9, 30), UTC)
    validate_within_working_hours(weekday_doctor(), at(MONDAY, 16, 30), at(MONDAY, 17), UTC)


def test_working_hours_reject_day_off() -> None:
    with pytest.raises(OutsideWorkingHours) as exc_info:
        validate_within_working_hours(weekday_doctor(), at(SATURDAY, 10), at(SATURDAY, 10, 30), UTC)

    assert exc_info.value.detail == "Doctor is not available on Saturday"


@pytest.mark.parametrize(
    ("start", "end"),
    [
        (at(MONDAY, 8, 30), at(MONDAY, 9, 0)),
        (at(MONDAY, 16, 45), at(MONDAY, 17, 15)),
        (at(MONDAY, 23, 45), at(MONDAY + timedelta(days=1), 0, 15)),
    ],
)
def test_working_hours_reject_outside_window(start: datetime, end: datetime) -> None:
    doctor = weekday_doctor(start_time=time(0, 0), end_time=time(23, 59)) if start.hour == 23 else weekday_doctor()

    with pytest.raises(OutsideWorkingHours) as exc_info:
        validate_within_working_hours(doctor, start, end, UTC)

    assert "available hours" in exc_info.value.detail


def test_cancel_allowed_with_enough_notice() -> None:
    check_cancellable("SCHEDULED", NOW + timedelta(hours=24), NOW)
    check_cancellable("CONFIRMED", NOW + timedelta(days=3), NOW)


@pytest.mark.parametrize(
    ("status", "start", "detail"),
    [
        ("SCHEDULED", NOW + timedelta(hours=23, minutes=59), "Appointments can only be cancelled at least 24 hours in advance"),
        ("COMPLETED", NOW + timedelta(days=3), "Cannot cancel completed appointments"),
        ("CANCELLED", NOW + timedelta(days=3), "Appointment is already cancelled"),
    ],
)
def test_cancel_rejected(status: str, start: datetime, detail: str) -> None:
    with pytest.raises(CancellationNotAllowed) as exc_info:
        check_cancellable(status, start, NOW)

    assert exc_info.value.detail == detail
