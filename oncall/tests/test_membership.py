from __future__ import annotations

from django.test import TestCase

from ..commands import ProfileUpdate, TeamUpdate
from ..exceptions import Conflict, CrossDelegationViolation, Forbidden, NotFound, UnknownUser
from ..models import StaffProfile, Team, TeamMembership, UserRole
from ..services import membership
from .helpers import caller_for, make_delegation, make_user, seed_catalogs


class MembershipTests(TestCase):
    def setUp(self):
        seed_catalogs()
        self.delegation = make_delegation("Bilbao")
        self.other_delegation = make_delegation("Madrid")
        self.admin = make_user("ADMIN", self.other_delegation)
        self.supervisor = make_user("SUPERVISOR", self.delegation)
        self.technician = make_user("TECHNICIAN", self.delegation)
        self.outsider = make_user("TECHNICIAN", self.other_delegation)
        self.team = membership.create_team(caller_for(self.admin), "Networks", self.delegation.pk)
        self.caller = caller_for(self.supervisor)

    def test_add_member_from_same_delegation(self):
        member = membership.add_member(self.caller, self.team.pk, self.technician.pk)
        self.assertEqual(member.team_id, self.team.pk)
        self.assertEqual(membership.list_members(self.caller, self.team.pk), [self.technician])

    def test_cross_delegation_member_is_rejected(self):
        with self.assertRaises(CrossDelegationViolation):
            membership.add_member(caller_for(self.admin), self.team.pk, self.outsider.pk)
        self.assertFalse(TeamMembership.objects.exists())

    def test_duplicate_member_conflicts(self):
        membership.add_member(self.caller, self.team.pk, self.technician.pk)
        with self.assertRaises(Conflict):
            membership.add_member(self.caller, self.team.pk, self.technician.pk)

    def test_unknown_user_is_rejected(self):
        with self.assertRaises(UnknownUser):
            membership.add_member(self.caller, self.team.pk, 999_999)

    def test_remove_member(self):
        membership.add_member(self.caller, self.team.pk, self.technician.pk)
        membership.remove_member(self.caller, self.team.pk, self.technician.pk)
        self.assertEqual(membership.list_members(self.caller, self.team.pk), [])
        with self.assertRaises(NotFound):
            membership.remove_member(self.caller, self.team.pk, self.technician.pk)

    def test_members_are_listed_in_insertion_order(self):
        second = make_user("TECHNICIAN", self.delegation)
        membership.add_member(self.caller, self.team.pk, second.pk)
        membership.add_member(self.caller, self.team.pk, self.technician.pk)
        membership.add_member(self.caller, self.team.pk, self.supervisor.pk)
        self.assertEqual(
            membership.list_members(self.caller, self.team.pk),
            [second, self.technician, self.supervisor],
        )

    def test_supervisor_of_another_delegation_cannot_touch_team(self):
        foreign_supervisor = caller_for(make_user("SUPERVISOR", self.other_delegation))
        with self.assertRaises(Forbidden):
            membership.add_member(foreign_supervisor, self.team.pk, self.technician.pk)
        with self.assertRaises(Forbidden):
            membership.get_team(foreign_supervisor, self.team.pk)

    def test_technician_cannot_manage_members(self):
        with self.assertRaises(Forbidden):
            membership.add_member(caller_for(self.technician), self.team.pk, self.technician.pk)

    def test_missing_team_is_not_found(self):
        with self.assertRaises(NotFound):
            membership.add_member(self.caller, 999_999, self.technician.pk)

    def test_deleting_team_cascades_memberships(self):
        membership.add_member(self.caller, self.team.pk, self.technician.pk)
        self.team.delete()
        self.assertFalse(TeamMembership.objects.exists())


class TeamAdministrationTests(TestCase):
    def setUp(self):
        seed_catalogs()
        self.delegation = make_delegation("Bilbao")
        self.other_delegation = make_delegation("Madrid")
        self.admin = caller_for(make_user("ADMIN", self.delegation))
        self.supervisor = caller_for(make_user("SUPERVISOR", self.delegation))
        self.alpha = membership.create_team(self.admin, "Alpha", self.delegation.pk)
        self.beta = membership.create_team(self.admin, "Beta", self.other_delegation.pk)

    def test_only_admins_create_teams(self):
        with self.assertRaises(Forbidden):
            membership.create_team(self.supervisor, "Gamma", self.delegation.pk)
        with self.assertRaises(NotFound):
            membership.create_team(self.admin, "Gamma", 999_999)

    def test_list_teams_is_scoped_for_non_admins(self):
        self.assertEqual(membership.list_teams(self.supervisor), [self.alpha])
        self.assertEqual(membership.list_teams(self.supervisor, delegation_id=self.other_delegation.pk), [self.alpha])
        self.assertEqual(membership.list_teams(self.admin), [self.alpha, self.beta])
        self.assertEqual(membership.list_teams(self.admin, delegation_id=self.other_delegation.pk), [self.beta])

    def test_update_team_only_touches_supplied_fields(self):
        team = membership.update_team(self.admin, self.alpha.pk, TeamUpdate(name="Alpha One"))
        self.assertEqual(team.name, "Alpha One")
        self.assertEqual(team.delegation_id, self.delegation.pk)
        team = membership.update_team(self.admin, self.alpha.pk, TeamUpdate(delegation_id=self.other_delegation.pk))
        self.assertEqual(Team.objects.get(pk=self.alpha.pk).delegation_id, self.other_delegation.pk)
        self.assertEqual(team.name, "Alpha One")

    def test_update_profile_reassigns_delegation(self):
        technician = make_user("TECHNICIAN", self.delegation)
        supervisor_role = UserRole.objects.get(code="SUPERVISOR")
        membership.update_profile(
            self.admin,
            technician.pk,
            ProfileUpdate(delegation_id=self.other_delegation.pk, role_id=supervisor_role.pk, is_active=False),
        )
        profile = StaffProfile.objects.select_related("user").get(user=technician)
        self.assertEqual(profile.delegation_id, self.other_delegation.pk)
        self.assertEqual(profile.role_id, supervisor_role.pk)
        self.assertFalse(profile.user.is_active)

    def test_update_profile_requires_admin(self):
        technician = make_user("TECHNICIAN", self.delegation)
        with self.assertRaises(Forbidden):
            membership.update_profile(self.supervisor, technician.pk, ProfileUpdate(is_active=False))
