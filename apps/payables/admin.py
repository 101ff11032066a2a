from __future__ import annotations

from django.contrib import admin

from apps.payables.models import PayoutConfig, PayoutRecord


@admin.register(PayoutConfig)
class PayoutConfigAdmin(admin.ModelAdmin):
    list_display = ("total_pool", "batch_size", "next_scheduled_run", "last_updated")
    readonly_fields = ("last_updated", "created_at", "updated_at")

    def has_add_permission(self, request):  # type: ignore[override]
        return not PayoutConfig.objects.exists()

    def has_delete_permission(self, request, obj=None):  # type: ignore[override]
        return False


@admin.register(PayoutRecord)
class PayoutRecordAdmin(admin.ModelAdmin):
    list_display = ("batch_id", "username", "amount", "status", "transfer_id", "expires_at", "created_at")
    list_filter = ("status",)
    search_fields = ("batch_id", "username", "transfer_id")
    readonly_fields = (
        "batch_id",
        "user",
        "username",
        "amount",
        "probability",
        "status",
        "transfer_id",
        "transfer_error",
        "expires_at",
        "created_at",
        "updated_at",
    )

    def has_add_permission(self, request):  # type: ignore[override]
        return False

    def has_change_permission(self, request, obj=None):  # type: ignore[override]
        # Status transitions go through the executor.
        return False

    def has_delete_permission(self, request, obj=None):  # type: ignore[override]
        return False
