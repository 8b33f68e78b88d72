# clinic/modules/doctors/repository.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Sequence
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.modules.appointments.models import Appointment, AppointmentStatus
from clinic.modules.doctors.models import Doctor


class DuplicateDoctorError(Exception):
    """Raised when a unique constraint (email / license number) fails at flush."""

    def __init__(self, field: str):
        self.field = field
        super().__init__(field)


class InvalidDoctorDataError(Exception):
    """Raised when a non-unique DB constraint (NOT NULL, CHECK) fails at flush."""


def _map_integrity_error(exc: IntegrityError) -> Exception:
    message = str(exc.orig).lower() if exc.orig else str(exc).lower()
    if "unique" not in message and "duplicate" not in message:
        return InvalidDoctorDataError("Doctor data violates DB constraints")
    if "license" in message:
        return DuplicateDoctorError("license_number")
    return DuplicateDoctorError("email")


async def get_by_id(
    db: AsyncSession, doctor_id: UUID, *, active_only: bool = True, for_update: bool = False
) -> Optional[Doctor]:
    stmt = select(Doctor).where(Doctor.id == doctor_id)
    if active_only:
        stmt = stmt.where(Doctor.is_active.is_(True))
    if for_update:
        # serializes bookings for one doctor (no-op on SQLite)
        stmt = stmt.with_for_update()
    return (await db.execute(stmt)).scalar_one_or_none()


async def find_by_email_or_license(
    db: AsyncSession, *, email: str, license_number: str
) -> Optional[Doctor]:
    """Uniqueness spans active and inactive doctors."""
    stmt = select(Doctor).where(
        or_(Doctor.email == email, Doctor.license_number == license_number)
    )
    return (await db.execute(stmt)).scalars().first()


async def exists_with(
    db: AsyncSession, *, exclude_id: UUID, email: Optional[str] = None, license_number: Optional[str] = None
) -> bool:
    stmt = select(Doctor.id).where(Doctor.id != exclude_id)
    if email is not None:
        stmt = stmt.where(Doctor.email == email)
    if license_number is not None:
        stmt = stmt.where(Doctor.license_number == license_number)
    return (await db.execute(stmt.limit(1))).first() is not None


async def create_doctor(db: AsyncSession, values: dict[str, Any]) -> Doctor:
    doctor = Doctor(**values)
    db.add(doctor)
    try:
        await db.flush()
    except IntegrityError as exc:
        raise _map_integrity_error(exc) from exc
    await db.refresh(doctor)
    return doctor


async def update_doctor(db: AsyncSession, doctor: Doctor, values: dict[str, Any]) -> Doctor:
    for key, value in values.items():
        setattr(doctor, key, value)
    try:
        await db.flush()
    except IntegrityError as exc:
        raise _map_integrity_error(exc) from exc
    await db.refresh(doctor)
    return doctor


async def list_active(
    db: AsyncSession,
    *,
    specialization: Optional[str],
    search: Optional[str],
    limit: int,
    offset: int,
) -> tuple[Sequence[Doctor], int]:
    conditions = [Doctor.is_active.is_(True)]

    if specialization:
        conditions.append(
            func.lower(Doctor.specialization).like(f"%{specialization.strip().lower()}%")
        )

    if search:
        term = f"%{search.strip().lower()}%"
        conditions.append(
            or_(
                func.lower(Doctor.name).like(term),
                func.lower(Doctor.specialization).like(term),
                func.lower(Doctor.hospital).like(term),
            )
        )

    total_stmt = select(func.count()).select_from(Doctor).where(*conditions)
    total = (await db.execute(total_stmt)).scalar_one()

    stmt = (
        select(Doctor)
        .where(*conditions)
        .order_by(Doctor.name, Doctor.id)  # tie-breaker for stable paging
        .limit(limit)
        .offset(offset)
    )
    rows = (await db.execute(stmt)).scalars().all()
    return rows, total


async def list_specializations(db: AsyncSession) -> list[str]:
    stmt = (
        select(Doctor.specialization)
        .where(Doctor.is_active.is_(True))
        .distinct()
        .order_by(Doctor.specialization)
    )
    return list((await db.execute(stmt)).scalars().all())


async def booked_intervals(
    db: AsyncSession, *, doctor_id: UUID, window_start: datetime, window_end: datetime
) -> list[tuple[datetime, datetime]]:
    """Non-cancelled appointment intervals overlapping [window_start, window_end)."""
    stmt = select(Appointment.start_time, Appointment.end_time).where(
        Appointment.doctor_id == doctor_id,
        Appointment.status != AppointmentStatus.CANCELLED.value,
        Appointment.start_time < window_end,
        Appointment.end_time > window_start,
    )
    return [(row.start_time, row.end_time) for row in (await db.execute(stmt)).all()]
