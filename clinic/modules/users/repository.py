# clinic/modules/users/repository.py
from __future__ import annotations

from datetime import date
from typing import Any, Optional, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.modules.users.models import User, UserRole


class EmailAlreadyExistsError(Exception):
    """Raised when trying to insert a user with an email that already exists."""


class InvalidUserDataError(Exception):
    """Raised when DB-level constraints fail (e.g., bad CHECK constraints)."""


def _map_integrity_error(exc: IntegrityError) -> Exception:
    message = str(exc.orig).lower() if exc.orig else str(exc).lower()
    if "uq_users_email" in message or "unique" in message:
        return EmailAlreadyExistsError("Email already registered")
    return InvalidUserDataError("User data violates DB constraints")


async def get_by_id(session: AsyncSession, user_id: UUID) -> Optional[User]:
    """
    Returns a User by primary key or None if not found.
    """
    return await session.get(User, user_id)


async def get_by_email(session: AsyncSession, email: str) -> Optional[User]:
    """
    Returns a User by email (normalized to lowercase) or None.
    """
    email = email.strip().lower()
    stmt = select(User).where(User.email == email)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def create_user(
    session: AsyncSession,
    *,
    name: str,
    email: str,
    password_hash: str,
    role: UserRole | str = UserRole.PATIENT,
    phone: Optional[str] = None,
    date_of_birth: Optional[date] = None,
    address: Optional[str] = None,
) -> User:
    """
    Inserts a new user row and returns the persisted ORM instance.

    Expects a *hashed* password. Uniqueness and CHECK violations surface
    at flush and are mapped to EmailAlreadyExistsError / InvalidUserDataError.
    """
    role_value = role.value if isinstance(role, UserRole) else str(role)

    user = User(
        name=name.strip(),
        email=email.strip().lower(),
        password_hash=password_hash,
        role=role_value,
        phone=phone,
        date_of_birth=date_of_birth,
        address=address,
    )

    session.add(user)
    try:
        await session.flush()
    except IntegrityError as exc:
        raise _map_integrity_error(exc) from exc

    await session.refresh(user)
    return user


async def list_users(session: AsyncSession) -> Sequence[User]:
    stmt = select(User).order_by(User.created_at, User.id)
    return (await session.execute(stmt)).scalars().all()



async def update_user(session: AsyncSession, user: User, values: dict[str, Any]) -> User:
    """
    Apply column values to a loaded user and flush.
    """
    for key, value in values.items():
        setattr(user, key, value)
    try:
        await session.flush()
    except IntegrityError as exc:
        raise _map_integrity_error(exc) from exc
    await session.refresh(user)
    return user


async def delete_user(session: AsyncSession, user: User) -> None:
    await session.delete(user)
    await session.flush()
