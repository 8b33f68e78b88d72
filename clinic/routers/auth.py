# clinic/routers/auth.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.db.sql import get_session
from clinic.dependencies import get_current_user
from clinic.modules.users.models import User
from clinic.modules.users.schemas import (
    AuthResponse,
    LoginRequest,
    MeResponse,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
)
from clinic.modules.users.service import (
    EmailAlreadyExists,
    InvalidCredentials,
    login_user,
    refresh_access_token,
    register_user,
    to_public,
)

router = APIRouter(tags=["auth"])


@router.post(
    "/auth/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new patient account",
    responses={
        201: {"description": "User created"},
        400: {"description": "Invalid payload"},
        409: {"description": "Email already registered"},
    },
)
async def auth_register(
    payload: RegisterRequest,
    session: AsyncSession = Depends(get_session),
):
    """
    Register a new user. Self-registration always creates a `PATIENT`.

    Notes:
    - Email is normalized to lowercase.
    - Password must be at least 8 characters.
    """
    try:
        return await register_user(session, payload)
    except EmailAlreadyExists as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=e.detail,
        )


@router.post(
    "/auth/login",
    response_model=AuthResponse,
    status_code=status.HTTP_200_OK,
    summary="Obtain a Bearer token with email and password (JSON body)",
    responses={
        200: {"description": "Authenticated"},
        401: {"description": "Invalid credentials"},
    },
)
async def auth_login(
    payload: LoginRequest,
    session: AsyncSession = Depends(get_session),
):
    """
    JSON-based login endpoint used by frontend clients.

    Expects:
    {
        "email": "user@example.com",
        "password": "secret"
    }
    """
    try:
        return await login_user(session, payload)
    except InvalidCredentials as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.detail,
        )


@router.post(
    "/auth/token",
    response_model=AuthResponse,
    status_code=status.HTTP_200_OK,
    summary="OAuth2 password flow login (for Swagger UI)",
    responses={
        200: {"description": "Authenticated"},
        401: {"description": "Invalid credentials"},
    },
)
async def auth_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    session: AsyncSession = Depends(get_session),
):
    """
    OAuth2 password-flow compatible login endpoint.

    Swagger will send form data:
    - username: user email
    - password: user password
    """
    try:
        login_payload = LoginRequest(
            email=form_data.username,
            password=form_data.password,
        )
    except ValueError:
        # not an email address, so it cannot match an account
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="invalid_credentials",
        )

    try:
        return await login_user(session, login_payload)
    except InvalidCredentials as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.detail,
        )


@router.get(
    "/auth/me",
    response_model=MeResponse,
    status_code=status.HTTP_200_OK,
    summary="Return the current user's profile",
)
async def auth_me(current_user: User = Depends(get_current_user)):
    return to_public(current_user)


@router.post(
    "/auth/refresh",
    response_model=TokenResponse,
    status_code=status.HTTP_200_OK,
    summary="Exchange a refresh token for a new access token",
    responses={401: {"description": "Invalid refresh token"}},
)
async def auth_refresh(
    request: RefreshRequest,
    session: AsyncSession = Depends(get_session),
):
    try:
        return await refresh_access_token(session, request.refresh_token)
    except InvalidCredentials as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.detail,
        )
