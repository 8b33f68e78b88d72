# clinic/core/permission.py
from __future__ import annotations

from fastapi import Depends, HTTPException, status

from clinic.dependencies import get_current_user
from clinic.modules.users.models import User, UserRole


def require_roles(*allowed: UserRole):
    """
    Role guard factory. Example: Depends(require_roles(UserRole.ADMIN))
    """
    names = {r.value if isinstance(r, UserRole) else str(r) for r in allowed}

    async def dep(user: User = Depends(get_current_user)) -> User:
        if user.role not in names:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="insufficient_role",
            )
        return user

    return dep


require_admin = require_roles(UserRole.ADMIN)
