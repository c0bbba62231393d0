"""JSON endpoints exposing the scheduling and leave operations.

Views only parse input, resolve the caller and translate error kinds into
HTTP status codes. Every rule lives in ``oncall.services``.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict

from django.http import HttpResponse, JsonResponse
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from . import exceptions
from .forms import (
    LeaveDecisionForm,
    LeaveListQueryForm,
    LeaveRequestForm,
    MemberForm,
    ProfileUpdateForm,
    ShiftCreateForm,
    ShiftRangeQueryForm,
    ShiftUpdateForm,
    TeamForm,
    TeamListQueryForm,
    TeamUpdateForm,
)
from .identity import CallerContext, resolve_caller
from .services import leave, membership, scheduler

logger = logging.getLogger(__name__)

STATUS_BY_ERROR = {
    exceptions.Unauthenticated: 401,
    exceptions.Forbidden: 403,
    exceptions.NotFound: 404,
    exceptions.OverlapConflict: 409,
    exceptions.Conflict: 409,
    exceptions.RoleNotFound: 500,
    exceptions.CatalogIncomplete: 500,
}


def status_for(error: exceptions.OnCallError) -> int:
    for error_class in type(error).__mro__:
        if error_class in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[error_class]
    return 400


class InvalidInput(Exception):
    def __init__(self, errors: Dict[str, Any]) -> None:
        self.errors = errors
        super().__init__("Invalid input")


def _valid(form):
    if not form.is_valid():
        raise InvalidInput(form.errors.get_json_data())
    return form.cleaned_data


def _user_payload(user) -> dict:
    return {
        "id": user.pk,
        "username": user.get_username(),
        "first_name": user.first_name,
        "last_name": user.last_name,
        "email": user.email,
        "is_active": user.is_active,
    }


def _shift_payload(shift) -> dict:
    return {
        "id": shift.pk,
        "delegation_id": shift.delegation_id,
        "start": shift.start.isoformat(),
        "end": shift.end.isoformat(),
        "status": shift.status,
    }


def _assignment_payload(assignment) -> dict:
    return {
        "id": assignment.pk,
        "shift_id": assignment.shift_id,
        "user_id": assignment.user_id,
        "guard_role_id": assignment.guard_role_id,
        "shift": _shift_payload(assignment.shift),
        "guard_role": {
            "id": assignment.guard_role.pk,
            "code": assignment.guard_role.code,
            "name": assignment.guard_role.name,
        },
    }


def _shift_detail_payload(shift) -> dict:
    payload = _shift_payload(shift)
    payload["assignments"] = [
        {"user_id": item.user_id, "guard_role_id": item.guard_role_id}
        for item in shift.assignments.order_by("id")
    ]
    return payload


def _catalog_payload(entry) -> dict:
    return {"id": entry.pk, "code": entry.code, "name": entry.name}


def _leave_payload(leave_request) -> dict:
    return {
        "id": leave_request.pk,
        "user_id": leave_request.user_id,
        "type": _catalog_payload(leave_request.leave_type),
        "status": _catalog_payload(leave_request.status),
        "start": leave_request.start.isoformat(),
        "end": leave_request.end.isoformat(),
        "notes": leave_request.notes,
        "created_by": leave_request.created_by_id,
        "decided_by": leave_request.decided_by_id,
    }


def _team_payload(team) -> dict:
    return {"id": team.pk, "name": team.name, "delegation_id": team.delegation_id}


@method_decorator(csrf_exempt, name="dispatch")
class ApiView(View):
    """Base view: bearer credential in, JSON out, error kinds mapped to statuses."""

    def dispatch(self, request, *args, **kwargs):
        try:
            header = request.headers.get("Authorization", "")
            credential = header[7:] if header.startswith("Bearer ") else None
            self.caller: CallerContext = resolve_caller(credential)
            self.payload = self._parse_body(request)
            return super().dispatch(request, *args, **kwargs)
        except InvalidInput as exc:
            return JsonResponse({"error": "Invalid input", "code": "INVALID_INPUT", "fields": exc.errors}, status=400)
        except exceptions.OnCallError as exc:
            status = status_for(exc)
            if status >= 500:
                logger.error("%s on %s %s: %s", exc.code, request.method, request.path, exc.message)
            return JsonResponse({"error": exc.message, "code": exc.code}, status=status)

    @staticmethod
    def _parse_body(request) -> dict:
        if request.method not in {"POST", "PATCH", "PUT"} or not request.body:
            return {}
        try:
            body = json.loads(request.body)
        except (TypeError, ValueError):
            raise InvalidInput({"__all__": [{"message": "Body must be valid JSON.", "code": "invalid"}]})
        if not isinstance(body, dict):
            raise InvalidInput({"__all__": [{"message": "Body must be a JSON object.", "code": "invalid"}]})
        return body


class ShiftCollectionView(ApiView):
    def get(self, request):
        query = _valid(ShiftRangeQueryForm.from_query(request.GET))
        shifts = scheduler.list_shifts_for_delegation(
            self.caller,
            delegation_id=query["delegation_id"],
            date_from=query["start_from"],
            date_to=query["start_to"],
        )
        return JsonResponse([_shift_payload(shift) for shift in shifts], safe=False)

    def post(self, request):
        data = _valid(ShiftCreateForm(self.payload))
        shift = scheduler.propose_shift(
            self.caller,
            delegation_id=data["delegation_id"] or self.caller.delegation_id,
            start=data["start"],
            end=data["end"],
            status=data["status"] or None,
            assignments=data["assignments"],
        )
        return JsonResponse(_shift_detail_payload(shift), status=201)


class MyShiftsView(ApiView):
    def get(self, request):
        query = _valid(ShiftRangeQueryForm.from_query(request.GET))
        assignments = scheduler.list_shifts_for_user(
            self.caller, date_from=query["start_from"], date_to=query["start_to"]
        )
        return JsonResponse([_assignment_payload(item) for item in assignments], safe=False)


class NextShiftView(ApiView):
    def get(self, request):
        assignment = scheduler.next_shift_for_user(self.caller)
        return JsonResponse(_assignment_payload(assignment) if assignment else None, safe=False)


class ShiftDetailView(ApiView):
    def get(self, request, pk: int):
        return JsonResponse(_shift_detail_payload(scheduler.get_shift(self.caller, pk)))

    def patch(self, request, pk: int):
        form = ShiftUpdateForm(self.payload)
        _valid(form)
        shift = scheduler.reschedule_shift(self.caller, pk, form.to_command())
        return JsonResponse(_shift_detail_payload(shift))

    def delete(self, request, pk: int):
        scheduler.delete_shift(self.caller, pk)
        return HttpResponse(status=204)


class TeamCollectionView(ApiView):
    def get(self, request):
        query = _valid(TeamListQueryForm(request.GET))
        teams = membership.list_teams(self.caller, delegation_id=query["delegation_id"])
        return JsonResponse([_team_payload(team) for team in teams], safe=False)

    def post(self, request):
        data = _valid(TeamForm(self.payload))
        team = membership.create_team(self.caller, data["name"], data["delegation_id"])
        return JsonResponse(_team_payload(team), status=201)


class TeamDetailView(ApiView):
    def get(self, request, pk: int):
        team = membership.get_team(self.caller, pk)
        payload = _team_payload(team)
        payload["members"] = [_user_payload(user) for user in membership.list_members(self.caller, pk)]
        return JsonResponse(payload)

    def patch(self, request, pk: int):
        form = TeamUpdateForm(self.payload)
        _valid(form)
        team = membership.update_team(self.caller, pk, form.to_command())
        return JsonResponse(_team_payload(team))


class TeamMembersView(ApiView):
    def get(self, request, pk: int):
        return JsonResponse([_user_payload(user) for user in membership.list_members(self.caller, pk)], safe=False)

    def post(self, request, pk: int):
        data = _valid(MemberForm(self.payload))
        member = membership.add_member(self.caller, pk, data["user_id"])
        return JsonResponse({"team_id": member.team_id, "user_id": member.user_id}, status=201)


class TeamMemberDetailView(ApiView):
    def delete(self, request, pk: int, user_id: int):
        membership.remove_member(self.caller, pk, user_id)
        return HttpResponse(status=204)


class TeamLeaveView(ApiView):
    def get(self, request, pk: int):
        query = _valid(LeaveListQueryForm(request.GET))
        requests = leave.list_team_leave_requests(self.caller, pk, year=query["year"])
        return JsonResponse([_leave_payload(item) for item in requests], safe=False)


class LeaveCollectionView(ApiView):
    def get(self, request):
        query = _valid(LeaveListQueryForm(request.GET))
        requests = leave.list_own_leave_requests(
            self.caller,
            year=query["year"],
            type_id=query["type_id"],
            status_id=query["status_id"],
        )
        return JsonResponse([_leave_payload(item) for item in requests], safe=False)

    def post(self, request):
        data = _valid(LeaveRequestForm(self.payload))
        leave_request = leave.request_leave(
            self.caller,
            type_id=data["type_id"],
            start=data["start"],
            end=data["end"],
            notes=data["notes"] or None,
        )
        return JsonResponse(_leave_payload(leave_request), status=201)


class LeaveTypesView(ApiView):
    def get(self, request):
        return JsonResponse([_catalog_payload(item) for item in leave.list_leave_types()], safe=False)


class LeaveStatusesView(ApiView):
    def get(self, request):
        return JsonResponse([_catalog_payload(item) for item in leave.list_leave_statuses()], safe=False)


class LeaveDetailView(ApiView):
    def get(self, request, pk: int):
        return JsonResponse(_leave_payload(leave.get_leave_request(self.caller, pk)))


class LeaveDecisionView(ApiView):
    def patch(self, request, pk: int):
        data = _valid(LeaveDecisionForm(self.payload))
        notes = data["notes"] if "notes" in self.payload else None
        leave_request = leave.decide_leave(self.caller, pk, data["status_id"], notes=notes)
        return JsonResponse(_leave_payload(leave_request))


class ProfileUpdateView(ApiView):
    def patch(self, request, pk: int):
        form = ProfileUpdateForm(self.payload)
        _valid(form)
        profile = membership.update_profile(self.caller, pk, form.to_command())
        payload = _user_payload(profile.user)
        payload.update({"role_id": profile.role_id, "delegation_id": profile.delegation_id})
        return JsonResponse(payload)
