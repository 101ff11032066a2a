from __future__ import annotations

from django.contrib import admin

from apps.payments.models import PayoutAccount


@admin.register(PayoutAccount)
class PayoutAccountAdmin(admin.ModelAdmin):
    list_display = ("user", "stripe_account_id", "payouts_enabled", "details_submitted", "last_synced_at")
    list_filter = ("payouts_enabled", "details_submitted")
    search_fields = ("user__email", "user__handle", "stripe_account_id")
    readonly_fields = ("last_synced_at", "created_at", "updated_at")
