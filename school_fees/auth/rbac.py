import logging
from typing import Dict

from fastapi import Depends, HTTPException, status

from school_fees.auth.dependencies import get_current_user
from school_fees.auth.schemas import CurrentUser

logger = logging.getLogger(__name__)

ADMIN_ROLES = ("SUPER_ADMIN", "PLATFORM_ADMIN")


def has_permission(user: CurrentUser, module: str, action: str) -> bool:
    if user.role in ADMIN_ROLES:
        return True
    permissions: Dict[str, Dict[str, bool]] = user.permissions or {}
    return bool(permissions.get(module, {}).get(action, False))


def check_permission(module: str, action: str):
    """
    Dependency factory enforcing one permission from the token's permission map.
    Admin roles pass every check.

    Example:
        Depends(check_permission("fees", "update"))
    """

    async def _checker(current_user: CurrentUser = Depends(get_current_user)) -> None:
        if not has_permission(current_user, module, action):
            logger.warning(
                "Permission denied: %s.%s for role %s",
                module,
                action,
                current_user.role,
                extra={"tenant_id": current_user.tenant_id, "actor_id": current_user.id},
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )

    return _checker
