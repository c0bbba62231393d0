"""Teams, their members and the delegation consistency rule binding them."""
from __future__ import annotations

import logging
from typing import List, Optional

from django.db import IntegrityError, transaction

from ..commands import ProfileUpdate, TeamUpdate
from ..exceptions import Conflict, CrossDelegationViolation, NotFound, UnknownUser
from ..identity import CallerContext
from ..models import Delegation, StaffProfile, Team, TeamMembership, UserRole
from .policy import is_admin, require_admin, require_delegation_scope, require_supervisor_or_admin

logger = logging.getLogger(__name__)


def _get_team(team_id: int) -> Team:
    try:
        return Team.objects.select_related("delegation").get(pk=team_id)
    except Team.DoesNotExist:
        raise NotFound("Team not found.")


def _get_delegation(delegation_id: int) -> Delegation:
    try:
        return Delegation.objects.get(pk=delegation_id)
    except Delegation.DoesNotExist:
        raise NotFound(f"Delegation not found: {delegation_id}")


def _scoped_team(caller: CallerContext, team_id: int, action: str = "access") -> Team:
    capability = require_supervisor_or_admin(caller)
    team = _get_team(team_id)
    require_delegation_scope(
        caller,
        team.delegation_id,
        capability,
        message=f"You cannot {action} teams of another delegation.",
    )
    return team


def create_team(caller: CallerContext, name: str, delegation_id: int) -> Team:
    require_admin(caller)
    delegation = _get_delegation(delegation_id)
    team = Team.objects.create(name=name, delegation=delegation)
    logger.info("Team %s created in delegation %s by user %s", team.pk, delegation.pk, caller.user_id)
    return team


def get_team(caller: CallerContext, team_id: int) -> Team:
    return _scoped_team(caller, team_id, action="view")


def update_team(caller: CallerContext, team_id: int, update: TeamUpdate) -> Team:
    """Rename or move a team. Moving does not re-check existing members."""

    require_admin(caller)
    team = _get_team(team_id)
    changed = []
    if "name" in update.set_fields():
        team.name = update.name
        changed.append("name")
    if "delegation_id" in update.set_fields():
        team.delegation = _get_delegation(update.delegation_id)
        changed.append("delegation")
    if changed:
        team.save(update_fields=changed)
        logger.info("Team %s updated (%s) by user %s", team.pk, ", ".join(changed), caller.user_id)
    return team


def list_teams(caller: CallerContext, delegation_id: Optional[int] = None) -> List[Team]:
    queryset = Team.objects.select_related("delegation").order_by("name", "id")
    if is_admin(caller):
        if delegation_id is not None:
            queryset = queryset.filter(delegation_id=delegation_id)
    else:
        queryset = queryset.filter(delegation_id=caller.delegation_id)
    return list(queryset)


def add_member(caller: CallerContext, team_id: int, user_id: int) -> TeamMembership:
    team = _scoped_team(caller, team_id, action="modify")
    profile = (
        StaffProfile.objects.select_related("user").filter(user_id=user_id).first()
    )
    if profile is None:
        raise UnknownUser(f"User not found: {user_id}")
    if profile.delegation_id != team.delegation_id:
        logger.warning(
            "Refused to add user %s (delegation %s) to team %s (delegation %s)",
            user_id,
            profile.delegation_id,
            team.pk,
            team.delegation_id,
        )
        raise CrossDelegationViolation()
    if TeamMembership.objects.filter(team=team, user_id=user_id).exists():
        raise Conflict("User is already a member of this team.")
    try:
        with transaction.atomic():
            membership = TeamMembership.objects.create(team=team, user_id=user_id)
    except IntegrityError:
        raise Conflict("User is already a member of this team.")
    logger.info("User %s added to team %s by user %s", user_id, team.pk, caller.user_id)
    return membership


def remove_member(caller: CallerContext, team_id: int, user_id: int) -> None:
    team = _scoped_team(caller, team_id, action="modify")
    deleted, _ = TeamMembership.objects.filter(team=team, user_id=user_id).delete()
    if not deleted:
        raise NotFound("User is not a member of this team.")
    logger.info("User %s removed from team %s by user %s", user_id, team.pk, caller.user_id)


def list_members(caller: CallerContext, team_id: int) -> List:
    team = _scoped_team(caller, team_id, action="view")
    memberships = (
        TeamMembership.objects.filter(team=team)
        .select_related("user")
        .order_by("created_at", "id")
    )
    return [membership.user for membership in memberships]


def update_profile(caller: CallerContext, user_id: int, update: ProfileUpdate) -> StaffProfile:
    """Administrative changes to a user's role, home delegation or active flag."""

    require_admin(caller)
    try:
        profile = StaffProfile.objects.select_related("user").get(user_id=user_id)
    except StaffProfile.DoesNotExist:
        raise NotFound(f"User not found: {user_id}")

    requested = update.set_fields()
    changed = []
    if "role_id" in requested:
        if not UserRole.objects.filter(pk=update.role_id).exists():
            raise NotFound(f"Role not found: {update.role_id}")
        profile.role_id = update.role_id
        changed.append("role")
    if "delegation_id" in requested:
        profile.delegation = _get_delegation(update.delegation_id)
        changed.append("delegation")
    if "must_reset_password" in requested and update.must_reset_password is not None:
        profile.must_reset_password = update.must_reset_password
        changed.append("must_reset_password")

    with transaction.atomic():
        if changed:
            profile.save(update_fields=changed + ["updated_at"])
        if "is_active" in requested:
            profile.user.is_active = update.is_active
            profile.user.save(update_fields=["is_active"])
    logger.info("Profile of user %s updated (%s) by user %s", user_id, ", ".join(requested), caller.user_id)
    return profile
