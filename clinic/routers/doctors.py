# clinic/routers/doctors.py
from __future__ import annotations

from datetime import date
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.core.permission import require_admin
from clinic.db.sql import get_session
from clinic.dependencies import get_current_user
from clinic.modules.doctors.schemas import (
    AvailableSlot,
    DoctorCreate,
    DoctorListParams,
    DoctorPage,
    DoctorPublic,
    DoctorUpdate,
)
from clinic.modules.doctors.service import (
    DoctorConflict,
    DoctorNotFound,
    InvalidDoctorData,
    InvalidWorkingHours,
    create_doctor,
    get_available_slots,
    get_doctor_public,
    list_doctors,
    list_specializations,
    remove_doctor,
    update_doctor,
)
from clinic.modules.users.models import User

router = APIRouter(tags=["doctors"])


@router.post(
    "/doctors",
    response_model=DoctorPublic,
    status_code=status.HTTP_201_CREATED,
    summary="Add a doctor to the directory (admin only)",
    responses={
        400: {"description": "Invalid payload or working hours"},
        409: {"description": "Email or license number already used"},
    },
)
async def doctors_create(
    payload: DoctorCreate,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_admin),
):
    try:
        return await create_doctor(session, payload, current_user)
    except DoctorConflict as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=e.detail,
        )
    except (InvalidWorkingHours, InvalidDoctorData) as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=e.detail,
        )


@router.get(
    "/doctors",
    response_model=DoctorPage,
    summary="List active doctors (Bearer required, no role checks)",
)
async def doctors_index(
    specialization: str | None = Query(None, description="Case-insensitive substring"),
    search: str | None = Query(None, description="Search on name/specialization/hospital"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),  # Bearer only
):
    params = DoctorListParams(
        specialization=specialization,
        search=search,
        page=page,
        limit=limit,
    )
    return await list_doctors(session, params)


@router.get(
    "/doctors/specializations",
    response_model=List[str],
    summary="Distinct specializations of active doctors",
)
async def doctors_specializations(
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return await list_specializations(session)


@router.get(
    "/doctors/{doctor_id}",
    response_model=DoctorPublic,
    summary="Get an active doctor by id",
)
async def doctors_show(
    doctor_id: UUID,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    try:
        return await get_doctor_public(session, doctor_id)
    except DoctorNotFound as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=e.detail,
        )


@router.patch(
    "/doctors/{doctor_id}",
    response_model=DoctorPublic,
    summary="Update a doctor by id (admin only)",
)
async def doctors_update(
    doctor_id: UUID,
    payload: DoctorUpdate,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_admin),
):
    """
    Partial update.

    Notes:
    - Email / license number uniqueness is re-checked when they change (409).
    - The resulting working window must still satisfy start < end (400).
    """
    try:
        return await update_doctor(session, doctor_id, payload)
    except DoctorNotFound as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=e.detail,
        )
    except DoctorConflict as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=e.detail,
        )
    except (InvalidWorkingHours, InvalidDoctorData) as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=e.detail,
        )


@router.delete(
    "/doctors/{doctor_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Deactivate a doctor (admin only)",
)
async def doctors_delete(
    doctor_id: UUID,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_admin),
):
    try:
        await remove_doctor(session, doctor_id, current_user)
    except DoctorNotFound as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=e.detail,
        )


@router.get(
    "/doctors/{doctor_id}/available-slots",
    response_model=List[AvailableSlot],
    summary="Bookable slots of a doctor on one day",
)
async def doctors_available_slots(
    doctor_id: UUID,
    day: date = Query(..., alias="date", description="YYYY-MM-DD"),
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    try:
        return await get_available_slots(session, doctor_id, day)
    except DoctorNotFound as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=e.detail,
        )
