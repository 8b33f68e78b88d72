# clinic/routers/users.py
from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.core.permission import require_admin
from clinic.db.sql import get_session
from clinic.dependencies import get_current_user
from clinic.modules.appointments.schemas import AppointmentPublic
from clinic.modules.users.models import User
from clinic.modules.users.schemas import (
    ProfileUpdateRequest,
    UserCreateRequest,
    UserList,
    UserPublic,
    UserUpdateRequest,
)
from clinic.modules.users.service import (
    EmailAlreadyExists,
    InvalidUserData,
    UserNotFound,
    create_user as create_user_svc,
    delete_user as delete_user_svc,
    get_user as get_user_svc,
    list_user_appointments,
    list_users as list_users_svc,
    to_public,
    update_user as update_user_svc,
)

router = APIRouter(tags=["users"])


@router.post(
    "/users",
    response_model=UserPublic,
    status_code=status.HTTP_201_CREATED,
    summary="Create a user with any role (admin only)",
)
async def users_create(
    payload: UserCreateRequest,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_admin),
):
    try:
        return await create_user_svc(session, payload, current_user)
    except EmailAlreadyExists as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=e.detail,
        )


@router.get(
    "/users",
    response_model=UserList,
    summary="List all users (admin only)",
)
async def users_index(
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_admin),
):
    return await list_users_svc(session)


# /users/profile and /users/appointments must be declared before /users/{user_id}
@router.get(
    "/users/profile",
    response_model=UserPublic,
    summary="Current user's profile",
)
async def users_profile(current_user: User = Depends(get_current_user)):
    return to_public(current_user)


@router.patch(
    "/users/profile",
    response_model=UserPublic,
    summary="Update the current user's profile (role cannot be changed here)",
)
async def users_profile_update(
    payload: ProfileUpdateRequest,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    try:
        return await update_user_svc(session, current_user.id, payload)
    except EmailAlreadyExists as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=e.detail,
        )
    except InvalidUserData as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=e.detail,
        )


@router.get(
    "/users/appointments",
    response_model=List[AppointmentPublic],
    summary="All appointments booked by the current user",
)
async def users_appointments(
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    appointments = await list_user_appointments(session, current_user.id)
    return [AppointmentPublic.model_validate(a) for a in appointments]


@router.get(
    "/users/{user_id}",
    response_model=UserPublic,
    summary="Get a user by id (admin only)",
)
async def users_show(
    user_id: UUID,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_admin),
):
    try:
        return to_public(await get_user_svc(session, user_id))
    except UserNotFound as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=e.detail,
        )


@router.patch(
    "/users/{user_id}",
    response_model=UserPublic,
    summary="Update a user by id (admin only)",
)
async def users_update(
    user_id: UUID,
    payload: UserUpdateRequest,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_admin),
):
    try:
        return await update_user_svc(session, user_id, payload)
    except UserNotFound as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=e.detail,
        )
    except EmailAlreadyExists as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=e.detail,
        )
    except InvalidUserData as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=e.detail,
        )


@router.delete(
    "/users/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a user by id (admin only)",
)
async def users_delete(
    user_id: UUID,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_admin),
):
    """
    Hard delete. The user's appointments are removed with it.

    Notes:
    - Returns 204 on success, 404 if the user does not exist.
    """
    try:
        await delete_user_svc(session, user_id, current_user)
    except UserNotFound as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=e.detail,
        )
