from __future__ import annotations

from datetime import datetime, timezone as dt_timezone
from itertools import count

from django.contrib.auth import get_user_model

from ..catalogs import ensure_catalogs
from ..identity import CallerContext
from ..models import Delegation, GuardRole, LeaveStatus, LeaveType, StaffProfile, UserRole

User = get_user_model()

_sequence = count(1)


def seed_catalogs() -> None:
    # Idempotent; TransactionTestCase flushes the rows the data migration created.
    ensure_catalogs(UserRole, LeaveType, LeaveStatus, GuardRole)


def make_delegation(name: str | None = None) -> Delegation:
    return Delegation.objects.create(name=name or f"Delegation {next(_sequence)}")


def make_user(role_code: str, delegation: Delegation, username: str | None = None):
    user = User.objects.create_user(username=username or f"user{next(_sequence)}", password="pass12345")
    StaffProfile.objects.create(
        user=user,
        role=UserRole.objects.get(code=role_code),
        delegation=delegation,
    )
    return user


def caller_for(user) -> CallerContext:
    return CallerContext.for_user(user)


def at(day: int, hour: int, minute: int = 0) -> datetime:
    return datetime(2025, 1, day, hour, minute, tzinfo=dt_timezone.utc)


def guard_role(code: str) -> GuardRole:
    return GuardRole.objects.get(code=code)


def leave_status(code: str) -> LeaveStatus:
    return LeaveStatus.objects.get(code=code)


def leave_type(code: str = "VACATION") -> LeaveType:
    return LeaveType.objects.get(code=code)
