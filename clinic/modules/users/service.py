# clinic/modules/users/service.py
from __future__ import annotations

import logging
from typing import Any, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.core.config import settings
from clinic.core.errors import BadRequestError, ConflictError, NotFoundError, ServiceError
from clinic.core.security import (
    InvalidTokenError,
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    is_refresh_token,
    verify_password,
)
from clinic.modules.log import write_audit_log
from clinic.modules.users import repository as users_repo
from clinic.modules.users.models import User, UserRole
from clinic.modules.users.schemas import (
    AuthResponse,
    LoginRequest,
    ProfileUpdateRequest,
    RegisterRequest,
    TokenResponse,
    UserCreateRequest,
    UserList,
    UserPublic,
    UserSummary,
)

logger = logging.getLogger(__name__)


# Service-level errors (map them to HTTP in the router)
class EmailAlreadyExists(ConflictError):
    default_detail = "User with this email already exists"


class UserNotFound(NotFoundError):
    default_detail = "User not found"


class InvalidUserData(BadRequestError):
    default_detail = "Invalid user data"


class InvalidCredentials(ServiceError):
    status_code = 401
    default_detail = "invalid_credentials"


def to_public(user: User) -> UserPublic:
    """
    Convert ORM model to public DTO (never includes the password hash).
    """
    return UserPublic.model_validate(user)


def _issue_tokens(user: User, *, with_refresh: bool) -> dict[str, Any]:
    access = create_access_token(
        subject=str(user.id),
        email=user.email,
        role=user.role,
    )
    return {
        "access_token": access,
        "expires_in": settings.ACCESS_EXPIRES_MIN * 60,
        "refresh_token": create_refresh_token(subject=str(user.id)) if with_refresh else None,
    }


async def _create(
    session: AsyncSession, payload: RegisterRequest, role: UserRole
) -> User:
    existing = await users_repo.get_by_email(session, payload.email)
    if existing:
        raise EmailAlreadyExists()

    try:
        return await users_repo.create_user(
            session,
            name=payload.name,
            email=payload.email,
            password_hash=hash_password(payload.password.get_secret_value()),
            role=role,
            phone=payload.phone,
            date_of_birth=payload.date_of_birth,
            address=payload.address,
        )
    except users_repo.EmailAlreadyExistsError as exc:
        # lost a race against a concurrent registration
        raise EmailAlreadyExists() from exc


async def register_user(session: AsyncSession, payload: RegisterRequest) -> AuthResponse:
    """
    Business flow for self-registration:
      1) Check email uniqueness (409).
      2) Hash password with bcrypt and persist a PATIENT.
      3) Return an access token together with the user summary.
    """
    user = await _create(session, payload, UserRole.PATIENT)
    await write_audit_log(session, user.id, "REGISTER", user.email)
    logger.info("Registered user %s", user.id)

    return AuthResponse(
        **_issue_tokens(user, with_refresh=False),
        user=UserSummary.model_validate(user),
    )


async def authenticate(session: AsyncSession, email: str, password: str) -> Optional[User]:
    """Return the user when email and password match, else None."""
    user = await users_repo.get_by_email(session, email)
    if not user or not verify_password(password, user.password_hash):
        return None
    return user


async def login_user(session: AsyncSession, payload: LoginRequest) -> AuthResponse:
    """
    1) Fetch user by email
    2) Verify bcrypt password
    3) Issue access and refresh tokens
    """
    user = await authenticate(session, payload.email, payload.password.get_secret_value())
    if user is None:
        raise InvalidCredentials()

    return AuthResponse(
        **_issue_tokens(user, with_refresh=True),
        user=UserSummary.model_validate(user),
    )


async def refresh_access_token(session: AsyncSession, refresh_token: str) -> TokenResponse:
    try:
        payload = decode_token(refresh_token)
    except InvalidTokenError as exc:
        raise InvalidCredentials("invalid_token") from exc

    if not is_refresh_token(payload):
        raise InvalidCredentials("invalid_token_type")

    user = await find_user(session, payload.get("sub"))
    if user is None:
        raise InvalidCredentials("user_not_found")

    tokens = _issue_tokens(user, with_refresh=False)
    tokens["refresh_token"] = refresh_token
    return TokenResponse(**tokens)


async def find_user(session: AsyncSession, user_id: Any) -> Optional[User]:
    try:
        uid = user_id if isinstance(user_id, UUID) else UUID(str(user_id))
    except ValueError:
        return None
    return await users_repo.get_by_id(session, uid)


# ---- Admin / profile operations ----

async def create_user(
    session: AsyncSession, payload: UserCreateRequest, actor: User
) -> UserPublic:
    user = await _create(session, payload, payload.role)
    await write_audit_log(session, actor.id, "CREATE_USER", f"{user.id} role={user.role}")
    logger.info("User %s created by %s", user.id, actor.id)
    return to_public(user)


async def list_users(session: AsyncSession) -> UserList:
    users = await users_repo.list_users(session)
    return UserList(items=[to_public(u) for u in users], total=len(users))


async def get_user(session: AsyncSession, user_id: UUID) -> User:
    user = await users_repo.get_by_id(session, user_id)
    if not user:
        raise UserNotFound()
    return user


async def update_user(
    session: AsyncSession, user_id: UUID, payload: ProfileUpdateRequest
) -> UserPublic:
    """
    Partial update. Works for both the profile (no role field) and the
    admin variant (UserUpdateRequest, which may carry a role).
    """
    user = await get_user(session, user_id)
    changes = payload.model_dump(exclude_unset=True)

    new_email = changes.get("email")
    if new_email and new_email != user.email:
        if await users_repo.get_by_email(session, new_email):
            raise EmailAlreadyExists()

    password = changes.pop("password", None)
    if password is not None:
        changes["password_hash"] = hash_password(payload.password.get_secret_value())

    if changes.get("role") is not None:
        changes["role"] = UserRole(changes["role"]).value

    try:
        user = await users_repo.update_user(session, user, changes)
    except users_repo.EmailAlreadyExistsError as exc:
        raise EmailAlreadyExists() from exc
    except users_repo.InvalidUserDataError as exc:
        raise InvalidUserData() from exc
    return to_public(user)


async def delete_user(session: AsyncSession, user_id: UUID, actor: User) -> None:
    """Hard delete; the user's appointments go with it (FK cascade)."""
    user = await get_user(session, user_id)
    await write_audit_log(session, actor.id, "DELETE_USER", str(user.id))
    await users_repo.delete_user(session, user)
    logger.info("User %s deleted by %s", user_id, actor.id)


async def list_user_appointments(session: AsyncSession, user_id: UUID) -> List[Any]:
    from clinic.modules.appointments.models import Appointment

    await get_user(session, user_id)
    stmt = (
        select(Appointment)
        .where(Appointment.patient_id == user_id)
        .order_by(Appointment.start_time)
    )
    return list((await session.execute(stmt)).scalars().all())
