"""Shift admission control and assignment management.

A shift is only written while its delegation is locked: the overlap query and
the insert/update run inside one ``transaction.atomic`` block that first takes
``SELECT ... FOR UPDATE`` on the delegation row. SQLite ignores ``FOR UPDATE``;
there the project settings start every transaction with ``BEGIN IMMEDIATE`` so
the same block holds the database write lock instead.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, List, Optional, Sequence

from django.db import IntegrityError, transaction
from django.utils import timezone

from ..commands import AssignmentSpec, ShiftUpdate
from ..exceptions import (
    CrossDelegationAssignment,
    DuplicateAssignment,
    InvalidRange,
    NotFound,
    OverlapConflict,
    UnknownGuardRole,
    UnknownUser,
)
from ..identity import CallerContext
from ..models import Delegation, GuardRole, Shift, ShiftAssignment, StaffProfile
from .policy import (
    Capability,
    capability_of,
    require_delegation_scope,
    require_supervisor_or_admin,
)

logger = logging.getLogger(__name__)


def _check_range(start: datetime, end: datetime) -> None:
    if end <= start:
        raise InvalidRange("Shift end must be strictly after its start.")


def _lock_delegation(delegation_id: int) -> Delegation:
    try:
        return Delegation.objects.select_for_update().get(pk=delegation_id)
    except Delegation.DoesNotExist:
        raise NotFound(f"Delegation not found: {delegation_id}")


def _reject_overlap(delegation_id: int, start: datetime, end: datetime, exclude_id: Optional[int] = None) -> None:
    overlapping = Shift.objects.overlapping(delegation_id, start, end)
    if exclude_id is not None:
        overlapping = overlapping.exclude(pk=exclude_id)
    if overlapping.exists():
        logger.warning(
            "Rejected shift %s -> %s in delegation %s: overlaps an existing shift",
            start.isoformat(),
            end.isoformat(),
            delegation_id,
        )
        raise OverlapConflict()


def _validate_assignments(shift: Shift, assignments: Sequence[AssignmentSpec]) -> None:
    user_ids = [item.user_id for item in assignments]
    role_ids = [item.guard_role_id for item in assignments]
    if len(set(user_ids)) != len(user_ids):
        raise DuplicateAssignment("A user cannot hold more than one slot in the same shift.")
    if len(set(role_ids)) != len(role_ids):
        raise DuplicateAssignment("A guard role can only be assigned once per shift.")

    profiles = {
        profile.user_id: profile
        for profile in StaffProfile.objects.filter(user_id__in=user_ids)
    }
    missing_users = sorted(set(user_ids) - set(profiles))
    if missing_users:
        raise UnknownUser(f"Users not found: {', '.join(str(pk) for pk in missing_users)}")

    foreign = sorted(pk for pk, profile in profiles.items() if profile.delegation_id != shift.delegation_id)
    if foreign:
        logger.warning(
            "Rejected assignment of users %s to shift %s: different delegation",
            foreign,
            shift.pk,
        )
        raise CrossDelegationAssignment()

    known_roles = set(GuardRole.objects.filter(pk__in=role_ids).values_list("pk", flat=True))
    missing_roles = sorted(set(role_ids) - known_roles)
    if missing_roles:
        raise UnknownGuardRole(f"Guard roles not found: {', '.join(str(pk) for pk in missing_roles)}")


def _replace_assignments(shift: Shift, assignments: Sequence[AssignmentSpec]) -> List[ShiftAssignment]:
    """Validate, then swap the shift's whole assignment set.

    Must run inside the caller's atomic block so readers never observe an
    empty or partial set.
    """

    assignments = list(assignments)
    _validate_assignments(shift, assignments)
    shift.assignments.all().delete()
    try:
        created = ShiftAssignment.objects.bulk_create(
            [
                ShiftAssignment(shift=shift, user_id=item.user_id, guard_role_id=item.guard_role_id)
                for item in assignments
            ]
        )
    except IntegrityError:
        raise DuplicateAssignment()
    logger.info("Shift %s now has %d assignment(s)", shift.pk, len(created))
    return created


def _get_shift(shift_id: int, for_update: bool = False) -> Shift:
    queryset = Shift.objects.select_related("delegation")
    if for_update:
        queryset = queryset.select_for_update()
    try:
        return queryset.get(pk=shift_id)
    except Shift.DoesNotExist:
        raise NotFound("Shift not found.")


def _require_read_scope(caller: CallerContext, delegation_id: int) -> Capability:
    # Non-admin readers only ever see their own delegation.
    capability = capability_of(caller.role_id)
    require_delegation_scope(
        caller,
        delegation_id,
        capability,
        message="You cannot view shifts of another delegation.",
    )
    return capability


def propose_shift(
    caller: CallerContext,
    delegation_id: int,
    start: datetime,
    end: datetime,
    status: Optional[str] = None,
    assignments: Optional[Iterable[AssignmentSpec]] = None,
) -> Shift:
    """Admit a new shift if it overlaps nothing else in its delegation."""

    _check_range(start, end)
    capability = require_supervisor_or_admin(caller)
    require_delegation_scope(
        caller,
        delegation_id,
        capability,
        message="You cannot plan shifts for another delegation.",
    )

    with transaction.atomic():
        delegation = _lock_delegation(delegation_id)
        _reject_overlap(delegation.pk, start, end)
        shift = Shift.objects.create(
            delegation=delegation,
            start=start,
            end=end,
            status=status or Shift.DEFAULT_STATUS,
        )
        if assignments is not None:
            _replace_assignments(shift, list(assignments))

    logger.info(
        "Shift %s created in delegation %s (%s -> %s) by user %s",
        shift.pk,
        delegation_id,
        start.isoformat(),
        end.isoformat(),
        caller.user_id,
    )
    return shift


def reschedule_shift(caller: CallerContext, shift_id: int, update: ShiftUpdate) -> Shift:
    """Move, relabel and/or reassign a shift as a single all-or-nothing change."""

    current = _get_shift(shift_id)
    capability = require_supervisor_or_admin(caller)
    require_delegation_scope(
        caller,
        current.delegation_id,
        capability,
        message="You cannot modify shifts of another delegation.",
    )

    requested = update.set_fields()
    with transaction.atomic():
        _lock_delegation(current.delegation_id)
        shift = _get_shift(shift_id, for_update=True)

        start = requested.get("start", shift.start)
        end = requested.get("end", shift.end)
        _check_range(start, end)
        _reject_overlap(shift.delegation_id, start, end, exclude_id=shift.pk)

        shift.start = start
        shift.end = end
        if "status" in requested:
            shift.status = update.status or Shift.DEFAULT_STATUS
        shift.save(update_fields=["start", "end", "status", "updated_at"])

        if "assignments" in requested:
            _replace_assignments(shift, update.assignments)

    logger.info(
        "Shift %s rescheduled (%s) by user %s",
        shift.pk,
        ", ".join(sorted(requested)) or "no changes",
        caller.user_id,
    )
    return shift


def replace_assignments(
    caller: CallerContext, shift_id: int, assignments: Iterable[AssignmentSpec]
) -> List[ShiftAssignment]:
    shift = reschedule_shift(caller, shift_id, ShiftUpdate(assignments=list(assignments)))
    return list(shift.assignments.select_related("user", "guard_role").order_by("id"))


def delete_shift(caller: CallerContext, shift_id: int) -> None:
    shift = _get_shift(shift_id)
    capability = require_supervisor_or_admin(caller)
    require_delegation_scope(
        caller,
        shift.delegation_id,
        capability,
        message="You cannot delete shifts of another delegation.",
    )
    shift.delete()
    logger.info("Shift %s deleted by user %s", shift_id, caller.user_id)


def get_shift(caller: CallerContext, shift_id: int) -> Shift:
    shift = _get_shift(shift_id)
    _require_read_scope(caller, shift.delegation_id)
    return shift


def list_shifts_for_delegation(
    caller: CallerContext,
    delegation_id: Optional[int] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
) -> List[Shift]:
    if delegation_id is None:
        delegation_id = caller.delegation_id
    _require_read_scope(caller, delegation_id)
    return list(
        Shift.objects.filter(delegation_id=delegation_id)
        .starting_between(date_from, date_to)
        .order_by("start", "id")
    )


def list_shifts_for_user(
    caller: CallerContext,
    user_id: Optional[int] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
) -> List[ShiftAssignment]:
    """Assignments of one user, each with its shift and guard role, by shift start."""

    if user_id is None or user_id == caller.user_id:
        user_id = caller.user_id
    else:
        capability = require_supervisor_or_admin(caller)
        profile = StaffProfile.objects.filter(user_id=user_id).only("delegation_id").first()
        if profile is None:
            raise NotFound(f"User not found: {user_id}")
        require_delegation_scope(
            caller,
            profile.delegation_id,
            capability,
            message="You cannot view shifts of users from another delegation.",
        )

    queryset = ShiftAssignment.objects.filter(user_id=user_id).select_related(
        "shift", "shift__delegation", "guard_role"
    )
    if date_from is not None:
        queryset = queryset.filter(shift__start__gte=date_from)
    if date_to is not None:
        queryset = queryset.filter(shift__start__lte=date_to)
    return list(queryset.order_by("shift__start", "id"))


def next_shift_for_user(caller: CallerContext, now: Optional[datetime] = None) -> Optional[ShiftAssignment]:
    if now is None:
        now = timezone.now()
    upcoming = list_shifts_for_user(caller, date_from=now)
    return upcoming[0] if upcoming else None
