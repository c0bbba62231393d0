# Generated manually to seed baseline catalogs.
from __future__ import annotations

from django.db import migrations

from oncall.catalogs import GUARD_ROLES, LEAVE_STATUSES, LEAVE_TYPES, USER_ROLES, ensure_catalogs


def seed_catalogs(apps, schema_editor):
    ensure_catalogs(
        apps.get_model("oncall", "UserRole"),
        apps.get_model("oncall", "LeaveType"),
        apps.get_model("oncall", "LeaveStatus"),
        apps.get_model("oncall", "GuardRole"),
    )


def remove_catalogs(apps, schema_editor):
    for model_name, rows in (
        ("GuardRole", GUARD_ROLES),
        ("LeaveStatus", LEAVE_STATUSES),
        ("LeaveType", LEAVE_TYPES),
        ("UserRole", USER_ROLES),
    ):
        model = apps.get_model("oncall", model_name)
        model.objects.filter(code__in=[code for code, _ in rows]).delete()


class Migration(migrations.Migration):

    dependencies = [
        ("oncall", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(seed_catalogs, remove_catalogs),
    ]
