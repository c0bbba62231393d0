"""Caller identity: who is invoking a core operation."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from django.conf import settings
from django.core import signing

from .exceptions import Unauthenticated

logger = logging.getLogger(__name__)

CREDENTIAL_SALT = "oncall.caller"


@dataclass(frozen=True)
class CallerContext:
    """Identity every core operation receives explicitly."""

    user_id: int
    role_id: int
    delegation_id: int

    @classmethod
    def for_user(cls, user) -> "CallerContext":
        profile = user.staff_profile
        return cls(user_id=user.pk, role_id=profile.role_id, delegation_id=profile.delegation_id)


def issue_credential(user) -> str:
    caller = CallerContext.for_user(user)
    payload = {"sub": caller.user_id, "role": caller.role_id, "deleg": caller.delegation_id}
    return signing.dumps(payload, salt=CREDENTIAL_SALT)


def _is_caller_payload(payload) -> bool:
    if not isinstance(payload, dict):
        return False
    return all(
        isinstance(payload.get(key), int) and not isinstance(payload.get(key), bool)
        for key in ("sub", "role", "deleg")
    )


def resolve_caller(credential: Optional[str], max_age: Optional[int] = None) -> CallerContext:
    """Turn an opaque credential into a ``CallerContext`` or raise ``Unauthenticated``."""

    if not credential:
        raise Unauthenticated("Credential required.")
    if max_age is None:
        max_age = settings.ONCALL_CREDENTIAL_MAX_AGE
    try:
        payload = signing.loads(credential, salt=CREDENTIAL_SALT, max_age=max_age)
    except signing.SignatureExpired:
        raise Unauthenticated("Credential expired.")
    except signing.BadSignature:
        logger.warning("Rejected credential with a bad signature")
        raise Unauthenticated("Invalid credential.")
    if not _is_caller_payload(payload):
        raise Unauthenticated("Invalid credential.")
    return CallerContext(user_id=payload["sub"], role_id=payload["role"], delegation_id=payload["deleg"])
