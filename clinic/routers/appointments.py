# clinic/routers/appointments.py
from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.core.permission import require_admin
from clinic.db.sql import get_session
from clinic.dependencies import get_current_user
from clinic.modules.appointments.scheduling import (
    CancellationNotAllowed,
    InvalidAppointmentTime,
    OutsideWorkingHours,
)
from clinic.modules.appointments.schemas import (
    AppointmentCreateRequest,
    AppointmentListPage,
    AppointmentPublic,
    AppointmentUpdateRequest,
)
from clinic.modules.appointments.service import (
    AppointmentConflict,
    AppointmentForbidden,
    AppointmentLocked,
    AppointmentNotFound,
    cancel_appointment_svc,
    create_appointment_svc,
    delete_appointment_svc,
    doctor_schedule_svc,
    get_appointment_svc,
    list_appointments_svc,
    list_doctor_appointments_svc,
    list_my_appointments_svc,
    list_upcoming_svc,
    update_appointment_svc,
)
from clinic.modules.doctors.service import DoctorNotFound
from clinic.modules.users.models import User

router = APIRouter(tags=["appointments"])


@router.post(
    "/appointments",
    response_model=AppointmentPublic,
    status_code=status.HTTP_201_CREATED,
    summary="Book an appointment (transactional execution)",
    responses={
        400: {"description": "Invalid time or outside the doctor's hours"},
        404: {"description": "Doctor not found"},
        409: {"description": "Slot already taken"},
    },
)
async def appointments_create(
    payload: AppointmentCreateRequest,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),  # Bearer required
):
    try:
        return await create_appointment_svc(session, payload, current_user)
    except DoctorNotFound as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=e.detail,
        )
    except (InvalidAppointmentTime, OutsideWorkingHours) as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=e.detail,
        )
    except AppointmentConflict as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=e.detail,
        )


@router.get(
    "/appointments",
    response_model=AppointmentListPage,
    summary="All appointments (admin only)",
)
async def appointments_index(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_admin),
):
    return await list_appointments_svc(session, limit, offset)


@router.get(
    "/appointments/my",
    response_model=AppointmentListPage,
    summary="Retrieve current user's appointments",
)
async def appointments_my(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return await list_my_appointments_svc(session, current_user, limit, offset)


@router.get(
    "/appointments/upcoming",
    response_model=List[AppointmentPublic],
    summary="Current user's next scheduled appointments",
)
async def appointments_upcoming(
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return await list_upcoming_svc(session, current_user)


@router.get(
    "/appointments/doctor/{doctor_id}",
    response_model=List[AppointmentPublic],
    summary="Appointments of one doctor, optionally within a date range (admin only)",
)
async def appointments_for_doctor(
    doctor_id: UUID,
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_admin),
):
    return await list_doctor_appointments_svc(session, doctor_id, start_date, end_date)


@router.get(
    "/appointments/doctor/{doctor_id}/schedule",
    response_model=List[AppointmentPublic],
    summary="Scheduled appointments of one doctor on a given day (admin only)",
)
async def appointments_doctor_schedule(
    doctor_id: UUID,
    day: date = Query(..., alias="date", description="YYYY-MM-DD"),
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_admin),
):
    return await doctor_schedule_svc(session, doctor_id, day)


@router.get(
    "/appointments/{appointment_id}",
    response_model=AppointmentPublic,
    summary="Get one appointment (patients: own only)",
)
async def appointments_show(
    appointment_id: UUID,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    try:
        return await get_appointment_svc(session, appointment_id, current_user)
    except AppointmentNotFound as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=e.detail,
        )
    except AppointmentForbidden as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=e.detail,
        )


@router.patch(
    "/appointments/{appointment_id}",
    response_model=AppointmentPublic,
    summary="Update status / notes / reason / symptoms of a future appointment",
)
async def appointments_update(
    appointment_id: UUID,
    payload: AppointmentUpdateRequest,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    try:
        return await update_appointment_svc(session, appointment_id, payload, current_user)
    except (AppointmentNotFound, DoctorNotFound) as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=e.detail,
        )
    except AppointmentConflict as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=e.detail,
        )
    except AppointmentForbidden as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=e.detail,
        )
    except AppointmentLocked as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=e.detail,
        )


@router.post(
    "/appointments/{appointment_id}/cancel",
    response_model=AppointmentPublic,
    summary="Cancel an appointment (at least 24 hours ahead)",
)
async def appointments_cancel(
    appointment_id: UUID,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    try:
        return await cancel_appointment_svc(session, appointment_id, current_user)
    except AppointmentNotFound as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=e.detail,
        )
    except AppointmentForbidden as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=e.detail,
        )
    except CancellationNotAllowed as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=e.detail,
        )


@router.delete(
    "/appointments/{appointment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an appointment (admin only)",
)
async def appointments_delete(
    appointment_id: UUID,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_admin),
):
    try:
        await delete_appointment_svc(session, appointment_id, current_user)
    except AppointmentNotFound as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=e.detail,
        )
