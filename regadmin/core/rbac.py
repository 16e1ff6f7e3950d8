from fastapi import Depends, HTTPException, status

from regadmin.core.security import get_current_user
from regadmin.models.user import ADMIN_ROLES, ROLES, User


def require_roles(*allowed: str):
    """Dependency that lets through accounts whose role is one of `allowed`."""
    unknown = set(allowed) - set(ROLES)
    if unknown:
        raise ValueError(f"Unknown role(s): {sorted(unknown)}")

    def _dep(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"{user.role} accounts cannot do this (needs {' or '.join(allowed)})",
            )
        return user

    return _dep


require_admin = require_roles(*ADMIN_ROLES)
require_super_admin = require_roles("super_admin")
