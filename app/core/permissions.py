"""
Access gate: credential resolution and role checks.

Every request is resolved into a ``Principal`` before it reaches a bed or
equipment operation. How the ``X-User-Role`` header interacts with the role
stored on the account is a configurable ``RoleResolution`` policy:

* ``stored`` - the account's role is authoritative, the header is ignored.
* ``header_override`` - a present header replaces the stored role for the
  current request only. Anyone holding a valid credential can then act with
  any role, so this mode is a trust boundary and is logged when it applies.
"""
from dataclasses import dataclass
from typing import Iterable, Optional
import enum
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import AuthenticationError, AuthorizationError, NotFoundError
from app.core.security import verify_token
from app.domain.auth.models import UserRole
from app.domain.auth.repository import UserRepository

logger = logging.getLogger(__name__)

ADMIN_USER_ID = "admin"


@dataclass(frozen=True)
class Principal:
    """The resolved identity and effective role for one request"""
    user_id: str
    username: str
    role: UserRole
    is_admin: bool = False


class RoleResolution(str, enum.Enum):
    STORED = "stored"
    HEADER_OVERRIDE = "header_override"


def parse_role(value: str) -> UserRole:
    try:
        return UserRole(value)
    except ValueError:
        raise AuthorizationError(f"Unknown role: {value}")


class StoredRoleStrategy:
    name = RoleResolution.STORED

    def resolve(self, stored_role: UserRole, role_header: Optional[str]) -> UserRole:
        return stored_role


class HeaderOverrideStrategy:
    name = RoleResolution.HEADER_OVERRIDE

    def resolve(self, stored_role: UserRole, role_header: Optional[str]) -> UserRole:
        if not role_header:
            return stored_role
        role = parse_role(role_header)
        if role != stored_role:
            logger.warning(f"Role override from header: {stored_role.value} -> {role.value}")
        return role


_STRATEGIES = {
    RoleResolution.STORED: StoredRoleStrategy,
    RoleResolution.HEADER_OVERRIDE: HeaderOverrideStrategy,
}


def get_role_strategy(policy: Optional[str] = None):
    """Return the role resolution strategy for ``policy`` (defaults to settings)"""
    return _STRATEGIES[RoleResolution(policy or settings.ROLE_RESOLUTION)]()


def extract_bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise AuthenticationError("No authentication token, authorization denied")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Token is not valid")
    return token.strip()


async def resolve_principal(
    db: AsyncSession,
    authorization: Optional[str],
    role_header: Optional[str] = None,
    policy: Optional[str] = None,
) -> Principal:
    """Resolve the caller of a request or raise"""
    token = extract_bearer_token(authorization)
    strategy = get_role_strategy(policy)

    if settings.ADMIN_TOKEN_ENABLED and token == settings.ADMIN_TOKEN:
        role = strategy.resolve(parse_role(settings.ADMIN_DEFAULT_ROLE), role_header)
        logger.info(f"Admin token used with role {role.value}")
        return Principal(user_id=ADMIN_USER_ID, username="admin", role=role, is_admin=True)

    payload = verify_token(token, "access")
    if not payload or not payload.get("sub"):
        raise AuthenticationError("Token is not valid")

    user = await UserRepository(db).get_by_id(payload["sub"])
    if not user:
        raise NotFoundError("User not found")
    if not user.is_active:
        raise AuthenticationError("Inactive user")

    role = strategy.resolve(user.role, role_header)
    return Principal(user_id=user.id, username=user.username, role=role)


def check_roles(principal: Principal, allowed_roles: Iterable[UserRole]) -> Principal:
    """Raise AuthorizationError unless the principal's role is allowed"""
    allowed = list(allowed_roles)
    if principal.role not in allowed:
        raise AuthorizationError(
            "You do not have permission to perform this action. "
            f"Required roles: {', '.join(r.value for r in allowed)}"
        )
    return principal
