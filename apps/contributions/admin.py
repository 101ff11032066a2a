from __future__ import annotations

from django.contrib import admin

from apps.contributions.models import PointTransfer, UserContribution


@admin.register(UserContribution)
class UserContributionAdmin(admin.ModelAdmin):
    list_display = ("username", "total_points", "github_repo_points", "peer_review_points", "win_probability", "win_count")
    search_fields = ("username", "user__email", "user__handle")
    readonly_fields = ("win_probability", "win_count", "last_calculated", "created_at", "updated_at")


@admin.register(PointTransfer)
class PointTransferAdmin(admin.ModelAdmin):
    list_display = ("timestamp", "sender_username", "recipient_username", "amount", "point_type")
    list_filter = ("point_type",)
    search_fields = ("sender_username", "recipient_username", "memo")
    readonly_fields = (
        "sender",
        "sender_username",
        "recipient",
        "recipient_username",
        "amount",
        "point_type",
        "memo",
        "context",
        "timestamp",
        "created_at",
        "updated_at",
    )

    def has_add_permission(self, request):  # type: ignore[override]
        return False

    def has_change_permission(self, request, obj=None):  # type: ignore[override]
        return False

    def has_delete_permission(self, request, obj=None):  # type: ignore[override]
        return False
