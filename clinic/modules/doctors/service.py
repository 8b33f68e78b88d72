# clinic/modules/doctors/service.py
from __future__ import annotations

import logging
import math
from datetime import date, time
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from clinic.core.errors import BadRequestError, ConflictError, NotFoundError
from clinic.modules.appointments import scheduling
from clinic.modules.doctors import repository as repo
from clinic.modules.doctors.models import Doctor
from clinic.modules.doctors.schemas import (
    AvailableSlot,
    DoctorCreate,
    DoctorListParams,
    DoctorPage,
    DoctorPublic,
    DoctorUpdate,
)
from clinic.modules.log import write_audit_log
from clinic.modules.users.models import User

logger = logging.getLogger(__name__)

_DUPLICATE_MESSAGES = {
    "email": "Doctor with this email already exists",
    "license_number": "Doctor with this license number already exists",
}


class DoctorNotFound(NotFoundError):
    default_detail = "Doctor not found"


class DoctorConflict(ConflictError):
    default_detail = _DUPLICATE_MESSAGES["email"]


class InvalidWorkingHours(BadRequestError):
    default_detail = "Start time must be before end time"


class InvalidDoctorData(BadRequestError):
    default_detail = "Invalid doctor data"


def _to_public(doctor: Doctor) -> DoctorPublic:
    return DoctorPublic.model_validate(doctor)


def _validate_time_range(start: time, end: time) -> None:
    if (start.hour, start.minute) >= (end.hour, end.minute):
        raise InvalidWorkingHours()


async def create_doctor(
    session: AsyncSession, payload: DoctorCreate, actor: Optional[User] = None
) -> DoctorPublic:
    """
    Admin flow: email and license number must be unused (active or not),
    and the working window must be non-empty.
    """
    existing = await repo.find_by_email_or_license(
        session, email=payload.email, license_number=payload.license_number
    )
    if existing:
        if existing.email == payload.email:
            raise DoctorConflict(_DUPLICATE_MESSAGES["email"])
        raise DoctorConflict(_DUPLICATE_MESSAGES["license_number"])

    _validate_time_range(payload.start_time, payload.end_time)

    values = payload.model_dump()
    values["available_days"] = [d.value for d in payload.available_days]
    try:
        doctor = await repo.create_doctor(session, values)
    except repo.DuplicateDoctorError as exc:
        raise DoctorConflict(_DUPLICATE_MESSAGES[exc.field]) from exc
    except repo.InvalidDoctorDataError as exc:
        raise InvalidDoctorData() from exc

    await write_audit_log(
        session, actor.id if actor else None, "CREATE_DOCTOR", f"{doctor.id} {doctor.license_number}"
    )
    logger.info("Doctor %s created (%s)", doctor.id, doctor.specialization)
    return _to_public(doctor)


async def list_doctors(session: AsyncSession, params: DoctorListParams) -> DoctorPage:
    """Active doctors only, ordered by name."""
    offset = (params.page - 1) * params.limit
    doctors, total = await repo.list_active(
        session,
        specialization=params.specialization,
        search=params.search,
        limit=params.limit,
        offset=offset,
    )
    return DoctorPage(
        items=[_to_public(d) for d in doctors],
        total=total,
        page=params.page,
        limit=params.limit,
        total_pages=math.ceil(total / params.limit),
    )


async def get_doctor(session: AsyncSession, doctor_id: UUID, *, for_update: bool = False) -> Doctor:
    doctor = await repo.get_by_id(session, doctor_id, for_update=for_update)
    if not doctor:
        raise DoctorNotFound()
    return doctor


async def get_doctor_public(session: AsyncSession, doctor_id: UUID) -> DoctorPublic:
    return _to_public(await get_doctor(session, doctor_id))


async def update_doctor(
    session: AsyncSession, doctor_id: UUID, payload: DoctorUpdate
) -> DoctorPublic:
    doctor = await get_doctor(session, doctor_id)
    changes = payload.model_dump(exclude_unset=True)

    if changes.get("email") and changes["email"] != doctor.email:
        if await repo.exists_with(session, exclude_id=doctor.id, email=changes["email"]):
            raise DoctorConflict(_DUPLICATE_MESSAGES["email"])

    new_license = changes.get("license_number")
    if new_license and new_license != doctor.license_number:
        if await repo.exists_with(session, exclude_id=doctor.id, license_number=new_license):
            raise DoctorConflict(_DUPLICATE_MESSAGES["license_number"])

    # validate the window that will result, not only when both ends change
    _validate_time_range(
        changes.get("start_time") or doctor.start_time,
        changes.get("end_time") or doctor.end_time,
    )

    if changes.get("available_days") is not None:
        changes["available_days"] = [d.value for d in payload.available_days]

    try:
        doctor = await repo.update_doctor(session, doctor, changes)
    except repo.DuplicateDoctorError as exc:
        raise DoctorConflict(_DUPLICATE_MESSAGES[exc.field]) from exc
    except repo.InvalidDoctorDataError as exc:
        raise InvalidDoctorData() from exc
    return _to_public(doctor)


async def remove_doctor(
    session: AsyncSession, doctor_id: UUID, actor: Optional[User] = None
) -> None:
    """Soft delete: the doctor disappears from the directory, history stays."""
    doctor = await get_doctor(session, doctor_id)
    await repo.update_doctor(session, doctor, {"is_active": False})
    await write_audit_log(session, actor.id if actor else None, "DEACTIVATE_DOCTOR", str(doctor.id))
    logger.info("Doctor %s deactivated", doctor.id)


async def list_specializations(session: AsyncSession) -> List[str]:
    return await repo.list_specializations(session)


async def get_available_slots(
    session: AsyncSession, doctor_id: UUID, day: date
) -> List[AvailableSlot]:
    """
    Fixed-length slots across the doctor's working window on ``day``,
    flagged unavailable when a non-cancelled appointment overlaps them.
    """
    doctor = await get_doctor(session, doctor_id)
    tz = scheduling.clinic_tz()
    window_start, window_end = scheduling.day_bounds(day, tz)
    booked = await repo.booked_intervals(
        session, doctor_id=doctor.id, window_start=window_start, window_end=window_end
    )
    return [
        AvailableSlot(start_time=s.start, end_time=s.end, available=s.available)
        for s in scheduling.generate_slots(doctor, day, booked, tz)
    ]
