# clinic/modules/log.py
from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.modules.users.models import AuditLog

logger = logging.getLogger(__name__)


async def write_audit_log(
    session: AsyncSession,
    user_id: UUID | None,
    action: str,
    details: str | None = None,
) -> None:
    """
    Write an audit log entry inside the caller's transaction, so the entry
    is rolled back together with the action it describes.

    action:
        "REGISTER"
        "CREATE_USER"
        "DELETE_USER"
        "CREATE_DOCTOR"
        "DEACTIVATE_DOCTOR"
        "CREATE_APPOINTMENT"
        "CANCEL_APPOINTMENT"
        "DELETE_APPOINTMENT"
    """
    stmt = insert(AuditLog).values(
        user_id=user_id,
        action=action,
        details=details,
    )
    await session.execute(stmt)
    logger.debug("audit %s user=%s %s", action, user_id, details or "")
