# clinic/modules/appointments/service.py
from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.core.errors import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from clinic.modules.appointments import scheduling
from clinic.modules.appointments.models import Appointment, AppointmentStatus
from clinic.modules.appointments.schemas import (
    AppointmentCreateRequest,
    AppointmentListPage,
    AppointmentPublic,
    AppointmentUpdateRequest,
)
from clinic.modules.doctors.service import get_doctor
from clinic.modules.log import write_audit_log
from clinic.modules.users.models import User

logger = logging.getLogger(__name__)

UPCOMING_LIMIT = 10


# Custom errors for router mapping to HTTP
class AppointmentConflict(ConflictError):
    """
    The doctor already has a non-cancelled appointment overlapping the slot.
    """
    default_detail = "Doctor is not available at the selected time slot"


class AppointmentNotFound(NotFoundError):
    default_detail = "Appointment not found"


class AppointmentForbidden(ForbiddenError):
    """
    User does not have permission to operate this appointment
    """
    default_detail = "You can only access your own appointments"


class AppointmentLocked(BadRequestError):
    default_detail = "Cannot update past appointments"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _to_public(appt: Appointment) -> AppointmentPublic:
    return AppointmentPublic.model_validate(appt)


def _ensure_owner_or_admin(appt: Appointment, user: User, message: str) -> None:
    if not user.is_admin and appt.patient_id != user.id:
        raise AppointmentForbidden(message)


async def find_conflict(
    session: AsyncSession,
    doctor_id: UUID,
    start: datetime,
    end: datetime,
    exclude_id: Optional[UUID] = None,
) -> Optional[Appointment]:
    """
    First non-cancelled appointment of the doctor whose [start, end)
    overlaps the given interval, or None.
    """
    stmt = select(Appointment).where(
        Appointment.doctor_id == doctor_id,
        Appointment.status != AppointmentStatus.CANCELLED.value,
        Appointment.start_time < end,
        Appointment.end_time > start,
    )
    if exclude_id is not None:
        stmt = stmt.where(Appointment.id != exclude_id)
    return (await session.execute(stmt.limit(1))).scalars().first()


# CREATE
async def create_appointment_svc(
    session: AsyncSession,
    payload: AppointmentCreateRequest,
    current_user: User,
    now: Optional[datetime] = None,
) -> AppointmentPublic:
    """
    Book an appointment for the current user.

    Order of checks:
    - doctor exists and is active (404)
    - time rules: order, not past, 6 months horizon, 15-180 minutes (400)
    - no overlapping live appointment for the doctor (409)
    - doctor works that weekday and the interval fits the hours (400)

    The doctor row is locked first so two concurrent bookings for the same
    doctor run the overlap check one after the other.
    """
    doctor = await get_doctor(session, payload.doctor_id, for_update=True)

    tz = scheduling.clinic_tz()
    start = scheduling.to_utc(payload.start_time, tz)
    end = scheduling.to_utc(payload.end_time, tz)
    now = now or _utcnow()

    scheduling.validate_appointment_times(start, end, now)

    conflict = await find_conflict(session, doctor.id, start, end)
    if conflict is not None:
        logger.warning(
            "Booking rejected: doctor %s busy %s-%s (appointment %s)",
            doctor.id, start.isoformat(), end.isoformat(), conflict.id,
        )
        raise AppointmentConflict()

    scheduling.validate_within_working_hours(doctor, start, end, tz)

    appt = Appointment(
        doctor_id=doctor.id,
        patient_id=current_user.id,
        start_time=start,
        end_time=end,
        reason=payload.reason,
        symptoms=payload.symptoms,
        consultation_fee=doctor.consultation_fee,
        status=AppointmentStatus.SCHEDULED.value,
    )

    session.add(appt)
    try:
        await session.flush()
    except IntegrityError as exc:
        # uq_appt_doctor_start_active: a concurrent booking won the slot
        raise AppointmentConflict() from exc
    await session.refresh(appt)

    await write_audit_log(session, current_user.id, "CREATE_APPOINTMENT", str(appt.id))
    logger.info("Appointment %s booked with doctor %s", appt.id, doctor.id)
    return _to_public(appt)


async def _page(
    session: AsyncSession, conditions: list, limit: int, offset: int
) -> AppointmentListPage:
    total_stmt = select(func.count()).select_from(Appointment).where(*conditions)
    total = (await session.execute(total_stmt)).scalar_one()

    stmt = (
        select(Appointment)
        .where(*conditions)
        .order_by(Appointment.start_time, Appointment.id)
        .limit(limit)
        .offset(offset)
    )
    rows = (await session.execute(stmt)).scalars().all()
    return AppointmentListPage(
        items=[_to_public(a) for a in rows],
        total=total,
        limit=limit,
        offset=offset,
        has_next=offset + limit < total,
    )


# ALL (admin)
async def list_appointments_svc(
    session: AsyncSession, limit: int, offset: int
) -> AppointmentListPage:
    return await _page(session, [], limit, offset)


# MY APPOINTMENTS
async def list_my_appointments_svc(
    session: AsyncSession, current_user: User, limit: int, offset: int
) -> AppointmentListPage:
    return await _page(session, [Appointment.patient_id == current_user.id], limit, offset)


async def list_upcoming_svc(
    session: AsyncSession, current_user: User, now: Optional[datetime] = None
) -> List[AppointmentPublic]:
    """Next scheduled appointments of the current user."""
    now = now or _utcnow()
    stmt = (
        select(Appointment)
        .where(
            Appointment.patient_id == current_user.id,
            Appointment.start_time > now,
            Appointment.status == AppointmentStatus.SCHEDULED.value,
        )
        .order_by(Appointment.start_time)
        .limit(UPCOMING_LIMIT)
    )
    return [_to_public(a) for a in (await session.execute(stmt)).scalars().all()]


async def list_doctor_appointments_svc(
    session: AsyncSession,
    doctor_id: UUID,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> List[AppointmentPublic]:
    """
    All appointments of one doctor, optionally filtered on start time:
    both bounds -> between (inclusive), one bound -> after / before.
    """
    stmt = select(Appointment).where(Appointment.doctor_id == doctor_id)
    if start_date and end_date:
        stmt = stmt.where(
            Appointment.start_time.between(scheduling.to_utc(start_date), scheduling.to_utc(end_date))
        )
    elif start_date:
        stmt = stmt.where(Appointment.start_time > scheduling.to_utc(start_date))
    elif end_date:
        stmt = stmt.where(Appointment.start_time < scheduling.to_utc(end_date))

    stmt = stmt.order_by(Appointment.start_time)
    return [_to_public(a) for a in (await session.execute(stmt)).scalars().all()]


async def doctor_schedule_svc(
    session: AsyncSession, doctor_id: UUID, day: date
) -> List[AppointmentPublic]:
    """Scheduled appointments of a doctor on one clinic-local day."""
    day_start, day_end = scheduling.day_bounds(day)
    stmt = (
        select(Appointment)
        .where(
            Appointment.doctor_id == doctor_id,
            Appointment.start_time >= day_start,
            Appointment.start_time < day_end,
            Appointment.status == AppointmentStatus.SCHEDULED.value,
        )
        .order_by(Appointment.start_time)
    )
    return [_to_public(a) for a in (await session.execute(stmt)).scalars().all()]


async def get_appointment(session: AsyncSession, appointment_id: UUID) -> Appointment:
    appt = await session.get(Appointment, appointment_id)
    if not appt:
        raise AppointmentNotFound()
    return appt


async def get_appointment_svc(
    session: AsyncSession, appointment_id: UUID, current_user: User
) -> AppointmentPublic:
    appt = await get_appointment(session, appointment_id)
    _ensure_owner_or_admin(appt, current_user, "You can only view your own appointments")
    return _to_public(appt)


# UPDATE
async def update_appointment_svc(
    session: AsyncSession,
    appointment_id: UUID,
    payload: AppointmentUpdateRequest,
    current_user: User,
    now: Optional[datetime] = None,
) -> AppointmentPublic:
    """
    Patch status / notes / reason / symptoms while the appointment is still
    in the future. Patients may only touch their own appointments.

    Moving a cancelled appointment back to a live status re-checks the slot
    under the doctor row lock, like a new booking (409 when taken).
    """
    appt = await get_appointment(session, appointment_id)
    _ensure_owner_or_admin(appt, current_user, "You can only update your own appointments")

    now = now or _utcnow()
    if scheduling.as_utc(appt.start_time) < now:
        raise AppointmentLocked()

    changes = payload.model_dump(exclude_unset=True)
    if changes.get("status") is not None:
        changes["status"] = AppointmentStatus(changes["status"]).value

    reviving = (
        appt.status == AppointmentStatus.CANCELLED.value
        and changes.get("status") not in (None, AppointmentStatus.CANCELLED.value)
    )
    if reviving:
        await get_doctor(session, appt.doctor_id, for_update=True)
        conflict = await find_conflict(
            session, appt.doctor_id, appt.start_time, appt.end_time, exclude_id=appt.id
        )
        if conflict is not None:
            logger.warning(
                "Reactivation of %s rejected: slot taken by %s", appt.id, conflict.id
            )
            raise AppointmentConflict()

    for key, value in changes.items():
        setattr(appt, key, value)

    try:
        await session.flush()
    except IntegrityError as exc:
        raise AppointmentConflict() from exc
    await session.refresh(appt)
    return _to_public(appt)


# CANCEL
async def cancel_appointment_svc(
    session: AsyncSession,
    appointment_id: UUID,
    current_user: User,
    now: Optional[datetime] = None,
) -> AppointmentPublic:
    """
    Patients cancel their own appointments, admins cancel any.
    Completed or already-cancelled appointments, and appointments less than
    24 hours away, are rejected.
    """
    appt = await get_appointment(session, appointment_id)
    _ensure_owner_or_admin(appt, current_user, "You can only cancel your own appointments")

    scheduling.check_cancellable(appt.status, appt.start_time, now or _utcnow())

    appt.status = AppointmentStatus.CANCELLED.value
    await session.flush()
    await session.refresh(appt)

    await write_audit_log(session, current_user.id, "CANCEL_APPOINTMENT", str(appt.id))
    logger.info("Appointment %s cancelled by %s", appt.id, current_user.id)
    return _to_public(appt)


# DELETE (admin)
async def delete_appointment_svc(
    session: AsyncSession, appointment_id: UUID, actor: User
) -> None:
    appt = await get_appointment(session, appointment_id)
    await session.delete(appt)
    await session.flush()
    await write_audit_log(session, actor.id, "DELETE_APPOINTMENT", str(appointment_id))
    logger.info("Appointment %s deleted by %s", appointment_id, actor.id)
