"""Input-shape validation for the JSON API."""
from __future__ import annotations

from typing import Any, List

from django import forms

from .commands import AssignmentSpec, ProfileUpdate, ShiftUpdate, TeamUpdate


class _PartialForm(forms.Form):
    """Form whose omitted keys stay UNSET in the resulting command."""

    command_class: Any = None
    # Fields that may be omitted but, when sent, must carry a value.
    non_nullable: tuple = ()

    def clean(self) -> dict[str, Any]:
        cleaned = super().clean()
        for name in self.non_nullable:
            if name in self.data and cleaned.get(name) in (None, "") and name not in self.errors:
                self.add_error(name, "This field cannot be empty.")
        return cleaned

    def to_command(self):
        values = {name: self.cleaned_data.get(name) for name in self.fields if name in self.data}
        return self.command_class(**values)


class AssignmentListField(forms.JSONField):
    """A JSON list of ``{"user_id": int, "guard_role_id": int}`` objects."""

    def clean(self, value) -> List[AssignmentSpec] | None:
        value = super().clean(value)
        if value is None:
            return None
        if not isinstance(value, list):
            raise forms.ValidationError("Assignments must be a list.")
        specs = []
        for item in value:
            if not isinstance(item, dict):
                raise forms.ValidationError("Each assignment must be an object.")
            user_id = item.get("user_id")
            role_id = item.get("guard_role_id")
            if not _positive_int(user_id) or not _positive_int(role_id):
                raise forms.ValidationError("Each assignment needs positive integer user_id and guard_role_id.")
            specs.append(AssignmentSpec(user_id=user_id, guard_role_id=role_id))
        return specs


def _positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


class ShiftCreateForm(forms.Form):
    start = forms.DateTimeField()
    end = forms.DateTimeField()
    status = forms.CharField(max_length=20, required=False)
    delegation_id = forms.IntegerField(min_value=1, required=False)
    assignments = AssignmentListField(required=False)


class ShiftUpdateForm(_PartialForm):
    command_class = ShiftUpdate

    start = forms.DateTimeField(required=False)
    end = forms.DateTimeField(required=False)
    status = forms.CharField(max_length=20, required=False)
    assignments = AssignmentListField(required=False)

    non_nullable = ("start", "end", "status")

    def clean(self) -> dict[str, Any]:
        cleaned = super().clean()
        if "assignments" in self.data and cleaned.get("assignments") is None and "assignments" not in self.errors:
            # An explicit null clears the set, same as an empty list.
            cleaned["assignments"] = []
        return cleaned


class ShiftRangeQueryForm(forms.Form):
    start_from = forms.DateTimeField(required=False)
    start_to = forms.DateTimeField(required=False)
    delegation_id = forms.IntegerField(min_value=1, required=False)

    @classmethod
    def from_query(cls, params) -> "ShiftRangeQueryForm":
        return cls(
            {
                "start_from": params.get("from"),
                "start_to": params.get("to"),
                "delegation_id": params.get("delegation_id"),
            }
        )


class LeaveRequestForm(forms.Form):
    type_id = forms.IntegerField(min_value=1)
    start = forms.DateField()
    end = forms.DateField()
    notes = forms.CharField(max_length=500, required=False)


class LeaveDecisionForm(forms.Form):
    status_id = forms.IntegerField(min_value=1)
    notes = forms.CharField(max_length=500, required=False)


class LeaveListQueryForm(forms.Form):
    year = forms.IntegerField(min_value=1900, max_value=2200, required=False)
    type_id = forms.IntegerField(min_value=1, required=False)
    status_id = forms.IntegerField(min_value=1, required=False)


class TeamForm(forms.Form):
    name = forms.CharField(min_length=1, max_length=120)
    delegation_id = forms.IntegerField(min_value=1)


class TeamUpdateForm(_PartialForm):
    command_class = TeamUpdate
    non_nullable = ("name", "delegation_id")

    name = forms.CharField(min_length=1, max_length=120, required=False)
    delegation_id = forms.IntegerField(min_value=1, required=False)


class TeamListQueryForm(forms.Form):
    delegation_id = forms.IntegerField(min_value=1, required=False)


class MemberForm(forms.Form):
    user_id = forms.IntegerField(min_value=1)


class ProfileUpdateForm(_PartialForm):
    command_class = ProfileUpdate
    non_nullable = ("role_id", "delegation_id", "is_active", "must_reset_password")

    role_id = forms.IntegerField(min_value=1, required=False)
    delegation_id = forms.IntegerField(min_value=1, required=False)
    is_active = forms.NullBooleanField(required=False)
    must_reset_password = forms.NullBooleanField(required=False)
