from __future__ import annotations

import os

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from ...catalogs import ensure_catalogs
from ...models import Delegation, GuardRole, LeaveStatus, LeaveType, StaffProfile, UserRole

User = get_user_model()


class Command(BaseCommand):
    help = "Ensure catalogs, a default delegation and a bootstrap administrator exist."

    def add_arguments(self, parser):
        parser.add_argument("--email", default="admin@company.local", help="Administrator e-mail (also the username).")
        parser.add_argument(
            "--password",
            default=None,
            help="Administrator password (default: SEED_ADMIN_PASSWORD environment variable).",
        )
        parser.add_argument("--delegation", default="Bilbao", help="Name of the default delegation.")

    @transaction.atomic
    def handle(self, *args, **options):
        created = ensure_catalogs(UserRole, LeaveType, LeaveStatus, GuardRole)
        self.stdout.write(f"Catalogs ready ({created} new row(s)).")

        delegation, _ = Delegation.objects.get_or_create(
            name=options["delegation"],
            defaults={"code": options["delegation"].upper()[:20], "country_code": "ES"},
        )

        email = options["email"]
        if User.objects.filter(username=email).exists():
            self.stdout.write(self.style.SUCCESS(f"Administrator {email} already exists."))
            return

        password = options["password"] or os.getenv("SEED_ADMIN_PASSWORD")
        if not password:
            raise CommandError("Provide --password or set SEED_ADMIN_PASSWORD to create the administrator.")

        admin = User.objects.create_user(username=email, email=email, password=password, is_staff=True)
        StaffProfile.objects.create(
            user=admin,
            role=UserRole.objects.get(code=UserRole.Code.ADMIN),
            delegation=delegation,
        )
        self.stdout.write(self.style.SUCCESS(f"Administrator {email} created in delegation {delegation.name}."))
