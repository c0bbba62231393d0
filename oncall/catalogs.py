"""Baseline catalog rows every deployment needs."""
from __future__ import annotations

USER_ROLES = [
    ("TECHNICIAN", "Technician"),
    ("SUPERVISOR", "Supervisor"),
    ("ADMIN", "Administrator"),
]

LEAVE_TYPES = [
    ("VACATION", "Vacation"),
    ("SICK_LEAVE", "Sick leave"),
    ("PERSONAL", "Personal matters"),
    ("TRAINING", "Training"),
    ("OTHER", "Other"),
]

LEAVE_STATUSES = [
    ("PENDING", "Pending"),
    ("APPROVED", "Approved"),
    ("REJECTED", "Rejected"),
    ("CANCELLED", "Cancelled"),
]

GUARD_ROLES = [
    ("PRINCIPAL", "Principal"),
    ("SECONDARY", "Secondary"),
]


def ensure_catalogs(UserRole, LeaveType, LeaveStatus, GuardRole) -> int:
    """Upsert every catalog by code. Takes model classes so migrations can pass historical ones."""

    created = 0
    for model, rows in (
        (UserRole, USER_ROLES),
        (LeaveType, LEAVE_TYPES),
        (LeaveStatus, LEAVE_STATUSES),
        (GuardRole, GUARD_ROLES),
    ):
        for code, name in rows:
            _, was_created = model.objects.update_or_create(code=code, defaults={"name": name})
            created += int(was_created)
    return created
