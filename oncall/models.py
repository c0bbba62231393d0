"""Database models for on-call shifts, teams and leave requests."""
from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from django.contrib.auth import get_user_model
from django.db import models
from django.db.models import F, Q

User = get_user_model()


class UserRole(models.Model):
    """Catalog of application roles; a role's id is what credentials carry."""

    class Code(models.TextChoices):
        TECHNICIAN = "TECHNICIAN", "Technician"
        SUPERVISOR = "SUPERVISOR", "Supervisor"
        ADMIN = "ADMIN", "Administrator"

    code = models.CharField(max_length=30, unique=True)
    name = models.CharField(max_length=80)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class Delegation(models.Model):
    """Regional unit scoping shifts, teams and supervisor visibility."""

    name = models.CharField(max_length=120, unique=True)
    code = models.CharField(max_length=20, blank=True, null=True)
    country_code = models.CharField(max_length=2, blank=True, null=True)
    region_code = models.CharField(max_length=50, blank=True, null=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class StaffProfile(models.Model):
    """Role and home delegation attached to an auth user."""

    user = models.OneToOneField(
        User,
        on_delete=models.CASCADE,
        related_name="staff_profile",
    )
    role = models.ForeignKey(
        UserRole,
        on_delete=models.PROTECT,
        related_name="profiles",
    )
    delegation = models.ForeignKey(
        Delegation,
        on_delete=models.PROTECT,
        related_name="staff",
    )
    must_reset_password = models.BooleanField(default=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "staff profile"
        verbose_name_plural = "staff profiles"

    def __str__(self) -> str:
        return f"{self.user.get_username()} · {self.delegation.name} ({self.role.code})"


class Team(models.Model):
    name = models.CharField(max_length=120)
    delegation = models.ForeignKey(
        Delegation,
        on_delete=models.CASCADE,
        related_name="teams",
    )
    members = models.ManyToManyField(
        User,
        through="TeamMembership",
        related_name="teams",
    )

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return f"{self.name} ({self.delegation.name})"


class TeamMembership(models.Model):
    team = models.ForeignKey(
        Team,
        on_delete=models.CASCADE,
        related_name="memberships",
    )
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name="team_memberships",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]
        constraints = [
            models.UniqueConstraint(fields=["team", "user"], name="unique_team_member"),
        ]

    def __str__(self) -> str:
        return f"{self.user.get_username()} in {self.team.name}"


class GuardRole(models.Model):
    """Seniority slot within a shift (principal, secondary...)."""

    code = models.CharField(max_length=30, unique=True)
    name = models.CharField(max_length=80)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class ShiftQuerySet(models.QuerySet):
    def overlapping(self, delegation_id: int, start: datetime, end: datetime) -> "ShiftQuerySet":
        # Half-open intervals: touching endpoints do not overlap.
        return self.filter(delegation_id=delegation_id, start__lt=end, end__gt=start)

    def starting_between(
        self, date_from: Optional[datetime] = None, date_to: Optional[datetime] = None
    ) -> "ShiftQuerySet":
        queryset = self
        if date_from is not None:
            queryset = queryset.filter(start__gte=date_from)
        if date_to is not None:
            queryset = queryset.filter(start__lte=date_to)
        return queryset


class Shift(models.Model):
    """An on-call interval owned by a delegation."""

    DEFAULT_STATUS = "PLANNED"

    delegation = models.ForeignKey(
        Delegation,
        on_delete=models.CASCADE,
        related_name="shifts",
    )
    start = models.DateTimeField()
    end = models.DateTimeField()
    # Free-form lifecycle label, not a closed catalog.
    status = models.CharField(max_length=20, default=DEFAULT_STATUS)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ShiftQuerySet.as_manager()

    class Meta:
        ordering = ["start"]
        constraints = [
            models.CheckConstraint(condition=Q(end__gt=F("start")), name="shift_end_after_start"),
        ]
        indexes = [
            models.Index(fields=["delegation", "start", "end"], name="shift_delegation_interval"),
        ]

    def __str__(self) -> str:
        return f"{self.delegation.name} {self.start:%Y-%m-%d %H:%M} -> {self.end:%Y-%m-%d %H:%M}"


class ShiftAssignment(models.Model):
    shift = models.ForeignKey(
        Shift,
        on_delete=models.CASCADE,
        related_name="assignments",
    )
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name="shift_assignments",
    )
    guard_role = models.ForeignKey(
        GuardRole,
        on_delete=models.PROTECT,
        related_name="assignments",
    )

    class Meta:
        ordering = ["shift__start", "id"]
        constraints = [
            models.UniqueConstraint(fields=["shift", "user"], name="unique_shift_user"),
            models.UniqueConstraint(fields=["shift", "guard_role"], name="unique_shift_guard_role"),
        ]

    def __str__(self) -> str:
        return f"{self.user.get_username()} · {self.guard_role.code} · shift {self.shift_id}"


class LeaveType(models.Model):
    code = models.CharField(max_length=30, unique=True)
    name = models.CharField(max_length=120)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class LeaveStatus(models.Model):
    """Closed catalog of leave request states."""

    class Code(models.TextChoices):
        PENDING = "PENDING", "Pending"
        APPROVED = "APPROVED", "Approved"
        REJECTED = "REJECTED", "Rejected"
        CANCELLED = "CANCELLED", "Cancelled"

    code = models.CharField(max_length=12, unique=True, choices=Code.choices)
    name = models.CharField(max_length=80)

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "leave statuses"

    def __str__(self) -> str:
        return self.name

    @property
    def is_terminal(self) -> bool:
        return self.code != self.Code.PENDING


class LeaveRequestQuerySet(models.QuerySet):
    def in_year(self, year: int) -> "LeaveRequestQuerySet":
        return self.filter(start__gte=date(year, 1, 1), start__lte=date(year, 12, 31))


class LeaveRequest(models.Model):
    """A user's request for absence over an inclusive date range."""

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name="leave_requests",
    )
    leave_type = models.ForeignKey(
        LeaveType,
        on_delete=models.PROTECT,
        related_name="leave_requests",
    )
    status = models.ForeignKey(
        LeaveStatus,
        on_delete=models.PROTECT,
        related_name="leave_requests",
    )
    start = models.DateField()
    end = models.DateField()
    notes = models.CharField(max_length=500, blank=True)
    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="created_leave_requests",
    )
    decided_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="decided_leave_requests",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = LeaveRequestQuerySet.as_manager()

    class Meta:
        ordering = ["-start", "-id"]
        constraints = [
            models.CheckConstraint(condition=Q(end__gte=F("start")), name="leave_end_not_before_start"),
        ]

    def __str__(self) -> str:
        return f"{self.user.get_username()} {self.start}->{self.end} ({self.leave_type.code})"

    @property
    def total_days(self) -> int:
        return (self.end - self.start).days + 1

    @property
    def is_pending(self) -> bool:
        return self.status.code == LeaveStatus.Code.PENDING
