"""Role policy: capability levels and authorization predicates."""
from __future__ import annotations

import enum
import logging
from typing import Optional

from ..exceptions import Forbidden, RoleNotFound
from ..identity import CallerContext
from ..models import UserRole

logger = logging.getLogger(__name__)


class Capability(enum.IntEnum):
    TECHNICIAN = 1
    SUPERVISOR = 2
    ADMIN = 3


_CAPABILITY_BY_CODE = {
    UserRole.Code.TECHNICIAN: Capability.TECHNICIAN,
    UserRole.Code.SUPERVISOR: Capability.SUPERVISOR,
    UserRole.Code.ADMIN: Capability.ADMIN,
}


def capability_of(role_id: int) -> Capability:
    code = UserRole.objects.filter(pk=role_id).values_list("code", flat=True).first()
    if code is None or code not in _CAPABILITY_BY_CODE:
        logger.error("Role %s does not resolve to a known capability", role_id)
        raise RoleNotFound()
    return _CAPABILITY_BY_CODE[code]


def is_admin(caller: CallerContext) -> bool:
    return capability_of(caller.role_id) == Capability.ADMIN


def require_admin(caller: CallerContext) -> Capability:
    capability = capability_of(caller.role_id)
    if capability != Capability.ADMIN:
        raise Forbidden("Action reserved to administrators.")
    return capability


def require_supervisor_or_admin(caller: CallerContext) -> Capability:
    capability = capability_of(caller.role_id)
    if capability < Capability.SUPERVISOR:
        raise Forbidden()
    return capability


def require_delegation_scope(
    caller: CallerContext,
    delegation_id: int,
    capability: Optional[Capability] = None,
    message: Optional[str] = None,
) -> None:
    """Admins reach every delegation; everyone else only their own."""

    if capability is None:
        capability = capability_of(caller.role_id)
    if capability == Capability.ADMIN:
        return
    if caller.delegation_id != delegation_id:
        raise Forbidden(message or "You cannot access another delegation.")
