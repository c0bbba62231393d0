from __future__ import annotations

from django.test import TestCase
from django.urls import reverse

from ..identity import issue_credential
from ..models import LeaveRequest, LeaveStatus, Shift, ShiftAssignment, Team, TeamMembership
from ..services import scheduler
from .helpers import at, caller_for, guard_role, leave_status, leave_type, make_delegation, make_user, seed_catalogs


class ApiTestCase(TestCase):
    def setUp(self):
        seed_catalogs()
        self.delegation = make_delegation("Bilbao")
        self.other_delegation = make_delegation("Madrid")
        self.supervisor = make_user("SUPERVISOR", self.delegation)
        self.technician = make_user("TECHNICIAN", self.delegation)
        self.admin = make_user("ADMIN", self.other_delegation)

    def auth(self, user) -> dict:
        return {"Authorization": f"Bearer {issue_credential(user)}"}

    def post_json(self, url, data, user):
        return self.client.post(url, data, content_type="application/json", headers=self.auth(user))

    def patch_json(self, url, data, user):
        return self.client.patch(url, data, content_type="application/json", headers=self.auth(user))


class ShiftApiTests(ApiTestCase):
    def test_requests_without_credentials_are_unauthorized(self):
        response = self.client.get(reverse("oncall:shifts"))
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["code"], "UNAUTHENTICATED")

        response = self.client.get(reverse("oncall:shifts"), headers={"Authorization": "Bearer not-a-credential"})
        self.assertEqual(response.status_code, 401)

    def test_supervisor_creates_shift_with_assignments(self):
        response = self.post_json(
            reverse("oncall:shifts"),
            {
                "start": "2025-01-10T08:00:00Z",
                "end": "2025-01-10T20:00:00Z",
                "assignments": [
                    {"user_id": self.technician.pk, "guard_role_id": guard_role("PRINCIPAL").pk},
                ],
            },
            self.supervisor,
        )
        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual(body["delegation_id"], self.delegation.pk)
        self.assertEqual(body["status"], Shift.DEFAULT_STATUS)
        self.assertEqual(len(body["assignments"]), 1)

    def test_overlapping_shift_is_a_conflict(self):
        scheduler.propose_shift(caller_for(self.supervisor), self.delegation.pk, at(10, 8), at(10, 20))
        response = self.post_json(
            reverse("oncall:shifts"),
            {"start": "2025-01-10T19:00:00Z", "end": "2025-01-10T23:00:00Z"},
            self.supervisor,
        )
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["code"], "OVERLAP_CONFLICT")

    def test_adjacent_shift_is_accepted(self):
        scheduler.propose_shift(caller_for(self.supervisor), self.delegation.pk, at(10, 8), at(10, 20))
        response = self.post_json(
            reverse("oncall:shifts"),
            {"start": "2025-01-10T20:00:00Z", "end": "2025-01-11T08:00:00Z"},
            self.supervisor,
        )
        self.assertEqual(response.status_code, 201)

    def test_invalid_range_and_malformed_input_are_bad_requests(self):
        response = self.post_json(
            reverse("oncall:shifts"),
            {"start": "2025-01-10T20:00:00Z", "end": "2025-01-10T20:00:00Z"},
            self.supervisor,
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "INVALID_RANGE")

        response = self.post_json(reverse("oncall:shifts"), {"start": "yesterday"}, self.supervisor)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "INVALID_INPUT")
        self.assertIn("end", response.json()["fields"])

    def test_technician_cannot_create_shift(self):
        response = self.post_json(
            reverse("oncall:shifts"),
            {"start": "2025-01-10T08:00:00Z", "end": "2025-01-10T20:00:00Z"},
            self.technician,
        )
        self.assertEqual(response.status_code, 403)

    def test_patch_with_empty_assignments_clears_them(self):
        shift = scheduler.propose_shift(
            caller_for(self.supervisor),
            self.delegation.pk,
            at(10, 8),
            at(10, 20),
            assignments=[],
        )
        ShiftAssignment.objects.create(shift=shift, user=self.technician, guard_role=guard_role("PRINCIPAL"))

        response = self.patch_json(
            reverse("oncall:shift_detail", args=[shift.pk]), {"assignments": []}, self.supervisor
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["assignments"], [])
        self.assertFalse(ShiftAssignment.objects.filter(shift=shift).exists())

    def test_patch_with_omitted_assignments_keeps_them(self):
        shift = scheduler.propose_shift(caller_for(self.supervisor), self.delegation.pk, at(10, 8), at(10, 20))
        ShiftAssignment.objects.create(shift=shift, user=self.technician, guard_role=guard_role("PRINCIPAL"))

        response = self.patch_json(
            reverse("oncall:shift_detail", args=[shift.pk]), {"status": "CONFIRMED"}, self.supervisor
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "CONFIRMED")
        self.assertEqual(len(response.json()["assignments"]), 1)

    def test_patch_rejects_explicit_null_start(self):
        shift = scheduler.propose_shift(caller_for(self.supervisor), self.delegation.pk, at(10, 8), at(10, 20))
        response = self.patch_json(reverse("oncall:shift_detail", args=[shift.pk]), {"start": None}, self.supervisor)
        self.assertEqual(response.status_code, 400)
        self.assertIn("start", response.json()["fields"])

    def test_missing_shift_is_not_found(self):
        response = self.client.get(reverse("oncall:shift_detail", args=[999_999]), headers=self.auth(self.supervisor))
        self.assertEqual(response.status_code, 404)

    def test_delete_shift(self):
        shift = scheduler.propose_shift(caller_for(self.supervisor), self.delegation.pk, at(10, 8), at(10, 20))
        response = self.client.delete(
            reverse("oncall:shift_detail", args=[shift.pk]), headers=self.auth(self.supervisor)
        )
        self.assertEqual(response.status_code, 204)
        self.assertFalse(Shift.objects.filter(pk=shift.pk).exists())

    def test_my_shifts_and_next_shift(self):
        shift = scheduler.propose_shift(
            caller_for(self.supervisor),
            self.delegation.pk,
            at(10, 8),
            at(10, 20),
        )
        ShiftAssignment.objects.create(shift=shift, user=self.technician, guard_role=guard_role("SECONDARY"))

        response = self.client.get(reverse("oncall:my_shifts"), headers=self.auth(self.technician))
        self.assertEqual(response.status_code, 200)
        self.assertEqual([item["shift_id"] for item in response.json()], [shift.pk])
        self.assertEqual(response.json()[0]["guard_role"]["code"], "SECONDARY")

        # January 2025 is already in the past, so nothing is upcoming.
        response = self.client.get(reverse("oncall:next_shift"), headers=self.auth(self.technician))
        self.assertEqual(response.status_code, 200)
        self.assertIsNone(response.json())

    def test_listing_another_delegation_is_forbidden(self):
        response = self.client.get(
            reverse("oncall:shifts"),
            {"delegation_id": self.other_delegation.pk},
            headers=self.auth(self.supervisor),
        )
        self.assertEqual(response.status_code, 403)

        response = self.client.get(
            reverse("oncall:shifts"),
            {"delegation_id": self.delegation.pk},
            headers=self.auth(self.admin),
        )
        self.assertEqual(response.status_code, 200)


class TeamApiTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.team = Team.objects.create(name="Networks", delegation=self.delegation)

    def test_admin_creates_team(self):
        response = self.post_json(
            reverse("oncall:teams"), {"name": "Radio", "delegation_id": self.delegation.pk}, self.admin
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["name"], "Radio")

        response = self.post_json(
            reverse("oncall:teams"), {"name": "Radio", "delegation_id": self.delegation.pk}, self.supervisor
        )
        self.assertEqual(response.status_code, 403)

    def test_add_and_remove_member(self):
        url = reverse("oncall:team_members", args=[self.team.pk])
        response = self.post_json(url, {"user_id": self.technician.pk}, self.supervisor)
        self.assertEqual(response.status_code, 201)

        response = self.post_json(url, {"user_id": self.technician.pk}, self.supervisor)
        self.assertEqual(response.status_code, 409)

        response = self.client.get(reverse("oncall:team_detail", args=[self.team.pk]), headers=self.auth(self.supervisor))
        self.assertEqual([member["id"] for member in response.json()["members"]], [self.technician.pk])

        response = self.client.delete(
            reverse("oncall:team_member_detail", args=[self.team.pk, self.technician.pk]),
            headers=self.auth(self.supervisor),
        )
        self.assertEqual(response.status_code, 204)
        self.assertFalse(TeamMembership.objects.exists())

    def test_cross_delegation_member_is_a_bad_request(self):
        outsider = make_user("TECHNICIAN", self.other_delegation)
        response = self.post_json(
            reverse("oncall:team_members", args=[self.team.pk]), {"user_id": outsider.pk}, self.admin
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "CROSS_DELEGATION_VIOLATION")

    def test_rename_team(self):
        response = self.patch_json(
            reverse("oncall:team_detail", args=[self.team.pk]), {"name": "Core networks"}, self.admin
        )
        self.assertEqual(response.status_code, 200)
        self.team.refresh_from_db()
        self.assertEqual(self.team.name, "Core networks")
        self.assertEqual(self.team.delegation_id, self.delegation.pk)

    def test_deactivate_user_profile(self):
        response = self.patch_json(
            reverse("oncall:profile_update", args=[self.technician.pk]), {"is_active": False}, self.admin
        )
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()["is_active"])


class LeaveApiTests(ApiTestCase):
    def test_request_and_decide_leave(self):
        response = self.post_json(
            reverse("oncall:leave"),
            {"type_id": leave_type().pk, "start": "2025-03-03", "end": "2025-03-07", "notes": "Holidays"},
            self.technician,
        )
        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual(body["status"]["code"], "PENDING")

        decision_url = reverse("oncall:leave_decision", args=[body["id"]])
        response = self.patch_json(decision_url, {"status_id": leave_status("APPROVED").pk}, self.technician)
        self.assertEqual(response.status_code, 403)

        response = self.patch_json(decision_url, {"status_id": leave_status("APPROVED").pk}, self.supervisor)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"]["code"], "APPROVED")
        self.assertEqual(response.json()["notes"], "Holidays")

        response = self.patch_json(decision_url, {"status_id": leave_status("REJECTED").pk}, self.supervisor)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "INVALID_TRANSITION")

    def test_leave_with_inverted_dates_is_rejected(self):
        response = self.post_json(
            reverse("oncall:leave"),
            {"type_id": leave_type().pk, "start": "2025-03-07", "end": "2025-03-03"},
            self.technician,
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "INVALID_RANGE")
        self.assertFalse(LeaveRequest.objects.exists())

    def test_own_leave_list_and_catalogs(self):
        self.post_json(
            reverse("oncall:leave"),
            {"type_id": leave_type("TRAINING").pk, "start": "2025-05-05", "end": "2025-05-06"},
            self.technician,
        )
        response = self.client.get(reverse("oncall:leave"), {"year": 2025}, headers=self.auth(self.technician))
        self.assertEqual(response.status_code, 200)
        self.assertEqual([item["type"]["code"] for item in response.json()], ["TRAINING"])

        response = self.client.get(reverse("oncall:leave_statuses"), headers=self.auth(self.technician))
        self.assertEqual(len(response.json()), 4)

    def test_missing_pending_catalog_entry_is_a_structured_server_error(self):
        LeaveStatus.objects.filter(code="PENDING").delete()
        response = self.post_json(
            reverse("oncall:leave"),
            {"type_id": leave_type().pk, "start": "2025-03-03", "end": "2025-03-04"},
            self.technician,
        )
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["code"], "CATALOG_INCOMPLETE")

    def test_body_must_be_a_json_object(self):
        response = self.client.post(
            reverse("oncall:leave"),
            "[1, 2]",
            content_type="application/json",
            headers=self.auth(self.technician),
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "INVALID_INPUT")
