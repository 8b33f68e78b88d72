# clinic/modules/appointments/scheduling.py
"""
Booking rules expressed as plain functions over datetimes.

All functions take ``now`` explicitly and never touch the database, so the
service layer decides where "now" and the booked intervals come from.
Doctor arguments only need ``available_days``, ``start_time``, ``end_time``
and ``appointment_duration``.
"""
from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Iterable, List, NamedTuple, Tuple
from zoneinfo import ZoneInfo

from clinic.core.config import settings
from clinic.core.errors import BadRequestError
from clinic.modules.appointments.models import AppointmentStatus
from clinic.modules.doctors.models import Weekday

MIN_DURATION_MINUTES = 15
MAX_DURATION_MINUTES = 180
MAX_ADVANCE_MONTHS = 6
CANCELLATION_NOTICE = timedelta(hours=24)


class InvalidAppointmentTime(BadRequestError):
    default_detail = "Invalid appointment time"


class OutsideWorkingHours(BadRequestError):
    default_detail = "Doctor is not available at the selected time"


class CancellationNotAllowed(BadRequestError):
    default_detail = "Appointment cannot be cancelled"


class Slot(NamedTuple):
    start: datetime
    end: datetime
    available: bool


def clinic_tz() -> tzinfo:
    return ZoneInfo(settings.CLINIC_TIMEZONE)


def to_utc(value: datetime, tz: tzinfo | None = None) -> datetime:
    """Naive values are clinic-local wall time; aware values are converted."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=tz or clinic_tz())
    return value.astimezone(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """For values read back from the DB: some drivers drop tzinfo on UTC columns."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def add_months(value: datetime, months: int) -> datetime:
    """Calendar-month arithmetic; the day is clamped to the target month's length."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def minutes_since_midnight(t: time) -> int:
    return t.hour * 60 + t.minute


def intervals_overlap(
    a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime
) -> bool:
    # half-open intervals: touching endpoints do not overlap
    return a_start < b_end and a_end > b_start


def validate_appointment_times(start: datetime, end: datetime, now: datetime) -> None:
    """
    Not in the past, start < end, at most MAX_ADVANCE_MONTHS ahead and a
    duration within [MIN_DURATION_MINUTES, MAX_DURATION_MINUTES].
    """
    if start < now:
        raise InvalidAppointmentTime("Cannot schedule appointments in the past")

    if start >= end:
        raise InvalidAppointmentTime("Start time must be before end time")

    if start > add_months(now, MAX_ADVANCE_MONTHS):
        raise InvalidAppointmentTime(
            f"Cannot schedule appointments more than {MAX_ADVANCE_MONTHS} months in advance"
        )

    duration = (end - start).total_seconds() / 60
    if duration < MIN_DURATION_MINUTES:
        raise InvalidAppointmentTime(
            f"Appointment must be at least {MIN_DURATION_MINUTES} minutes long"
        )
    if duration > MAX_DURATION_MINUTES:
        raise InvalidAppointmentTime(
            f"Appointment cannot be longer than {MAX_DURATION_MINUTES // 60} hours"
        )


def validate_within_working_hours(
    doctor, start: datetime, end: datetime, tz: tzinfo | None = None
) -> None:
    """
    The interval must fall on one of the doctor's weekdays and inside
    [start_time, end_time) of that day, compared in minutes since midnight
    of clinic-local time.
    """
    tz = tz or clinic_tz()
    local_start = start.astimezone(tz)
    local_end = end.astimezone(tz)

    day = Weekday.from_index(local_start.weekday())
    if day.value not in (doctor.available_days or []):
        raise OutsideWorkingHours(f"Doctor is not available on {day.value}")

    hours = f"{doctor.start_time:%H:%M} - {doctor.end_time:%H:%M}"
    if local_end.date() != local_start.date():
        raise OutsideWorkingHours(
            f"Appointment must be within doctor's available hours ({hours})"
        )

    appt_start = minutes_since_midnight(local_start.time())
    appt_end = minutes_since_midnight(local_end.time())
    if (
        appt_start < minutes_since_midnight(doctor.start_time)
        or appt_end > minutes_since_midnight(doctor.end_time)
    ):
        raise OutsideWorkingHours(
            f"Appointment must be within doctor's available hours ({hours})"
        )


def day_bounds(day: date, tz: tzinfo | None = None) -> Tuple[datetime, datetime]:
    """UTC [start, end) of a clinic-local calendar day."""
    tz = tz or clinic_tz()
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def generate_slots(
    doctor,
    day: date,
    booked: Iterable[Tuple[datetime, datetime]] = (),
    tz: tzinfo | None = None,
) -> List[Slot]:
    """
    Walk the doctor's working window on ``day`` in appointment_duration
    steps. A slot is unavailable when any booked interval overlaps it.
    Returns an empty list on days the doctor does not work.
    """
    tz = tz or clinic_tz()
    if Weekday.from_index(day.weekday()).value not in (doctor.available_days or []):
        return []

    step = timedelta(minutes=doctor.appointment_duration)
    current = datetime.combine(day, doctor.start_time, tzinfo=tz)
    window_end = datetime.combine(day, doctor.end_time, tzinfo=tz)
    taken = [(as_utc(s), as_utc(e)) for s, e in booked]

    slots: List[Slot] = []
    while current + step <= window_end:
        slot_end = current + step
        start_utc, end_utc = to_utc(current), to_utc(slot_end)
        is_booked = any(intervals_overlap(start_utc, end_utc, s, e) for s, e in taken)
        slots.append(Slot(start=current, end=slot_end, available=not is_booked))
        current = slot_end
    return slots


def check_cancellable(status: str, start: datetime, now: datetime) -> None:
    """
    Cancellation needs a live appointment and at least CANCELLATION_NOTICE
    before it starts.
    """
    if status == AppointmentStatus.COMPLETED.value:
        raise CancellationNotAllowed("Cannot cancel completed appointments")
    if status == AppointmentStatus.CANCELLED.value:
        raise CancellationNotAllowed("Appointment is already cancelled")
    if as_utc(start) - now < CANCELLATION_NOTICE:
        hours = int(CANCELLATION_NOTICE.total_seconds() // 3600)
        raise CancellationNotAllowed(
            f"Appointments can only be cancelled at least {hours} hours in advance"
        )
