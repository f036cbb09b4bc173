from typing import Optional
from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.permissions import Principal, check_roles, resolve_principal
from app.domain.auth.models import UserRole
from app.infrastructure.database import get_db


async def get_current_principal(
    db: AsyncSession = Depends(get_db),
    authorization: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
) -> Principal:
    return await resolve_principal(db, authorization, x_user_role)


def require_roles(*roles: UserRole):
    """Dependency factory: resolve the caller, then check its role"""
    async def role_checker(
        principal: Principal = Depends(get_current_principal),
    ) -> Principal:
        return check_roles(principal, roles)

    return role_checker


require_bed_manager = require_roles(UserRole.BED_MANAGER)
require_equipment_staff = require_roles(UserRole.EQUIPMENT_MANAGER, UserRole.BED_MANAGER)
