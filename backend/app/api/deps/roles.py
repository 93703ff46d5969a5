from __future__ import annotations

from typing import Callable

from fastapi import Depends, HTTPException, status

from app.api.deps.auth import get_current_user
from app.core.enums import UserRole
from app.models.user import User

ALLOWED_ROLES = {r.value for r in UserRole}


def require_roles(*allowed_roles: str) -> Callable:
    """
    Enforce user.role is in allowed_roles (admin/seller/technician).
    """
    allowed = {str(getattr(r, "value", r)).lower() for r in allowed_roles}
    unknown = allowed - ALLOWED_ROLES
    if unknown:
        raise ValueError(f"Unknown role(s): {sorted(unknown)}. Allowed: {sorted(ALLOWED_ROLES)}")

    async def _checker(user: User = Depends(get_current_user)) -> User:
        role = (user.role or "").lower()
        if role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient role: {role}. Allowed: {', '.join(sorted(allowed))}",
            )
        return user

    return _checker


require_admin = require_roles(UserRole.ADMIN)
