"""Explicit update commands for partial edits.

Each field defaults to ``UNSET``; a field explicitly set to ``None`` or an empty
list is a real value, not an omission.
"""
from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import datetime
from typing import Any, List, Optional, Union


class _Unset:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


def is_set(value: Any) -> bool:
    return value is not UNSET


@dataclass(frozen=True)
class AssignmentSpec:
    """One requested (user, guard role) binding for a shift."""

    user_id: int
    guard_role_id: int


class _UpdateCommand:
    def set_fields(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self) if is_set(getattr(self, f.name))}


@dataclass(frozen=True)
class ShiftUpdate(_UpdateCommand):
    start: Union[datetime, _Unset] = UNSET
    end: Union[datetime, _Unset] = UNSET
    status: Union[str, _Unset] = UNSET
    assignments: Union[List[AssignmentSpec], _Unset] = UNSET


@dataclass(frozen=True)
class TeamUpdate(_UpdateCommand):
    name: Union[str, _Unset] = UNSET
    delegation_id: Union[int, _Unset] = UNSET


@dataclass(frozen=True)
class ProfileUpdate(_UpdateCommand):
    role_id: Union[int, _Unset] = UNSET
    delegation_id: Union[int, _Unset] = UNSET
    is_active: Union[bool, _Unset] = UNSET
    must_reset_password: Union[Optional[bool], _Unset] = UNSET
