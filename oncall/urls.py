"""URL routing for the on-call API."""
from django.urls import path

from . import views

app_name = "oncall"

urlpatterns = [
    path("shifts/", views.ShiftCollectionView.as_view(), name="shifts"),
    path("shifts/mine/", views.MyShiftsView.as_view(), name="my_shifts"),
    path("shifts/next/", views.NextShiftView.as_view(), name="next_shift"),
    path("shifts/<int:pk>/", views.ShiftDetailView.as_view(), name="shift_detail"),
    path("teams/", views.TeamCollectionView.as_view(), name="teams"),
    path("teams/<int:pk>/", views.TeamDetailView.as_view(), name="team_detail"),
    path("teams/<int:pk>/members/", views.TeamMembersView.as_view(), name="team_members"),
    path(
        "teams/<int:pk>/members/<int:user_id>/",
        views.TeamMemberDetailView.as_view(),
        name="team_member_detail",
    ),
    path("teams/<int:pk>/leave/", views.TeamLeaveView.as_view(), name="team_leave"),
    path("leave/", views.LeaveCollectionView.as_view(), name="leave"),
    path("leave/types/", views.LeaveTypesView.as_view(), name="leave_types"),
    path("leave/statuses/", views.LeaveStatusesView.as_view(), name="leave_statuses"),
    path("leave/<int:pk>/", views.LeaveDetailView.as_view(), name="leave_detail"),
    path("leave/<int:pk>/decision/", views.LeaveDecisionView.as_view(), name="leave_decision"),
    path("users/<int:pk>/profile/", views.ProfileUpdateView.as_view(), name="profile_update"),
]
