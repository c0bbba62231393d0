"""Admin configuration for on-call scheduling."""
from django.contrib import admin

from .models import (
    Delegation,
    GuardRole,
    LeaveRequest,
    LeaveStatus,
    LeaveType,
    Shift,
    ShiftAssignment,
    StaffProfile,
    Team,
    TeamMembership,
    UserRole,
)


class _ReadOnlyInline(admin.TabularInline):
    """Listing only; writes go through the API so membership and assignment rules apply."""

    extra = 0

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class TeamMembershipInline(_ReadOnlyInline):
    model = TeamMembership
    fields = ("user", "created_at")
    readonly_fields = ("created_at",)


class ShiftAssignmentInline(_ReadOnlyInline):
    model = ShiftAssignment
    fields = ("user", "guard_role")


@admin.register(UserRole)
class UserRoleAdmin(admin.ModelAdmin):
    list_display = ("name", "code")
    search_fields = ("name", "code")


@admin.register(Delegation)
class DelegationAdmin(admin.ModelAdmin):
    list_display = ("name", "code", "country_code", "region_code", "is_active")
    list_filter = ("is_active", "country_code")
    search_fields = ("name", "code")


@admin.register(StaffProfile)
class StaffProfileAdmin(admin.ModelAdmin):
    list_display = ("user", "role", "delegation", "must_reset_password", "updated_at")
    list_filter = ("role", "delegation")
    search_fields = ("user__username", "user__email")
    autocomplete_fields = ("user", "delegation")


@admin.register(Team)
class TeamAdmin(admin.ModelAdmin):
    list_display = ("name", "delegation")
    list_filter = ("delegation",)
    search_fields = ("name",)
    inlines = [TeamMembershipInline]


@admin.register(GuardRole)
class GuardRoleAdmin(admin.ModelAdmin):
    list_display = ("name", "code")
    search_fields = ("name", "code")


@admin.register(Shift)
class ShiftAdmin(admin.ModelAdmin):
    """Read-mostly view; planning goes through the API so overlap rules apply."""

    list_display = ("delegation", "start", "end", "status")
    list_filter = ("delegation", "status")
    date_hierarchy = "start"
    ordering = ("start",)
    inlines = [ShiftAssignmentInline]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(LeaveType)
class LeaveTypeAdmin(admin.ModelAdmin):
    list_display = ("name", "code")
    search_fields = ("name", "code")


@admin.register(LeaveStatus)
class LeaveStatusAdmin(admin.ModelAdmin):
    list_display = ("name", "code")


@admin.register(LeaveRequest)
class LeaveRequestAdmin(admin.ModelAdmin):
    """Read-only; requests are filed and decided through the API so the status rules apply."""

    list_display = (
        "user",
        "leave_type",
        "start",
        "end",
        "status",
        "decided_by",
        "updated_at",
    )
    list_filter = ("status", "leave_type", "start")
    search_fields = ("user__username", "notes")
    readonly_fields = ("created_at", "updated_at", "total_days_display")
    ordering = ("-start",)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def total_days_display(self, obj):
        return obj.total_days

    total_days_display.short_description = "Days"
