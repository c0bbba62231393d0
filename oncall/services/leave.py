"""Leave request lifecycle.

``PENDING`` is the only non-terminal state. A request leaves it through one
explicit decision by a supervisor or administrator and never comes back.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional

from django.db import transaction
from django.utils import timezone

from ..exceptions import (
    CatalogIncomplete,
    Forbidden,
    InvalidRange,
    InvalidTransition,
    NotFound,
    UnknownLeaveType,
    UnknownStatus,
)
from ..identity import CallerContext
from ..models import LeaveRequest, LeaveStatus, LeaveType, StaffProfile, Team, TeamMembership
from .policy import Capability, require_delegation_scope, require_supervisor_or_admin

logger = logging.getLogger(__name__)


def _pending_status() -> LeaveStatus:
    try:
        return LeaveStatus.objects.get(code=LeaveStatus.Code.PENDING)
    except LeaveStatus.DoesNotExist:
        logger.error("Leave status catalog has no PENDING entry; run seed_oncall")
        raise CatalogIncomplete("Leave status PENDING is missing from the catalog.")


def _with_relations(queryset):
    return queryset.select_related("user", "leave_type", "status", "created_by", "decided_by")


def list_leave_types() -> List[LeaveType]:
    return list(LeaveType.objects.order_by("name"))


def list_leave_statuses() -> List[LeaveStatus]:
    return list(LeaveStatus.objects.order_by("name"))


def request_leave(
    caller: CallerContext,
    type_id: int,
    start: date,
    end: date,
    notes: Optional[str] = None,
) -> LeaveRequest:
    """File a leave request for the caller. It always starts out ``PENDING``."""

    if end < start:
        raise InvalidRange("Leave end date cannot be earlier than its start date.")
    leave_type = LeaveType.objects.filter(pk=type_id).first()
    if leave_type is None:
        raise UnknownLeaveType(f"Unknown leave type: {type_id}")

    # Leave is deliberately not checked against other leave or on-call shifts.
    leave_request = LeaveRequest.objects.create(
        user_id=caller.user_id,
        leave_type=leave_type,
        status=_pending_status(),
        start=start,
        end=end,
        notes=notes or "",
        created_by_id=caller.user_id,
    )
    logger.info(
        "Leave request %s (%s, %s -> %s) filed by user %s",
        leave_request.pk,
        leave_type.code,
        start,
        end,
        caller.user_id,
    )
    return leave_request


def decide_leave(
    caller: CallerContext,
    request_id: int,
    new_status_id: int,
    notes: Optional[str] = None,
) -> LeaveRequest:
    """Move a pending request to a terminal status.

    The pending check and the write are a single conditional update, so when
    two reviewers race on the same request the second one sees zero rows
    updated and gets ``InvalidTransition``.
    """

    require_supervisor_or_admin(caller)

    leave_request = _with_relations(LeaveRequest.objects).filter(pk=request_id).first()
    if leave_request is None:
        raise NotFound("Leave request not found.")
    if not leave_request.is_pending:
        raise InvalidTransition(f"Cannot change a leave request in status {leave_request.status.code}.")

    new_status = LeaveStatus.objects.filter(pk=new_status_id).first()
    if new_status is None:
        raise UnknownStatus(f"Unknown leave status: {new_status_id}")
    if not new_status.is_terminal:
        raise InvalidTransition("A leave request cannot be put back into PENDING.")

    pending = _pending_status()
    changes = {
        "status": new_status,
        "decided_by_id": caller.user_id,
        "updated_at": timezone.now(),
    }
    if notes is not None:
        changes["notes"] = notes

    with transaction.atomic():
        # Plain column filter: the row is re-checked after waiting on its lock.
        updated = LeaveRequest.objects.filter(pk=request_id, status_id=pending.pk).update(**changes)
        if not updated:
            logger.warning("Leave request %s was decided concurrently; rejecting second decision", request_id)
            raise InvalidTransition("This leave request has already been decided.")

    logger.info(
        "Leave request %s moved to %s by user %s",
        request_id,
        new_status.code,
        caller.user_id,
    )
    return _with_relations(LeaveRequest.objects).get(pk=request_id)


def get_leave_request(caller: CallerContext, request_id: int) -> LeaveRequest:
    leave_request = _with_relations(LeaveRequest.objects).filter(pk=request_id).first()
    if leave_request is None:
        raise NotFound("Leave request not found.")
    if leave_request.user_id == caller.user_id:
        return leave_request
    capability = require_supervisor_or_admin(caller)
    owner_delegation = (
        StaffProfile.objects.filter(user_id=leave_request.user_id).values_list("delegation_id", flat=True).first()
    )
    if owner_delegation is None and capability != Capability.ADMIN:
        raise Forbidden()
    if owner_delegation is not None:
        require_delegation_scope(caller, owner_delegation, capability)
    return leave_request


def list_own_leave_requests(
    caller: CallerContext,
    year: Optional[int] = None,
    type_id: Optional[int] = None,
    status_id: Optional[int] = None,
) -> List[LeaveRequest]:
    queryset = _with_relations(LeaveRequest.objects.filter(user_id=caller.user_id))
    if year:
        queryset = queryset.in_year(year)
    if type_id:
        queryset = queryset.filter(leave_type_id=type_id)
    if status_id:
        queryset = queryset.filter(status_id=status_id)
    return list(queryset.order_by("-start", "-id"))


def list_team_leave_requests(
    caller: CallerContext,
    team_id: int,
    year: Optional[int] = None,
) -> List[LeaveRequest]:
    capability = require_supervisor_or_admin(caller)
    team = Team.objects.filter(pk=team_id).first()
    if team is None:
        raise NotFound("Team not found.")
    require_delegation_scope(
        caller,
        team.delegation_id,
        capability,
        message="You cannot view teams of another delegation.",
    )

    member_ids = list(TeamMembership.objects.filter(team=team).values_list("user_id", flat=True))
    if not member_ids:
        return []
    queryset = _with_relations(LeaveRequest.objects.filter(user_id__in=member_ids))
    if year:
        queryset = queryset.in_year(year)
    return list(queryset.order_by("-start", "-id"))
