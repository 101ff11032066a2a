from __future__ import annotations

from django.contrib import admin

from apps.gauntlet.models import GauntletChallenge


@admin.register(GauntletChallenge)
class GauntletChallengeAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "game_id",
        "status",
        "challenger_username",
        "opponent_username",
        "wager_category",
        "challenger_wager",
        "opponent_wager",
        "winner",
        "created_at",
    )
    list_filter = ("status", "wager_category")
    search_fields = ("game_id", "challenger_username", "opponent_username")
    readonly_fields = [field.name for field in GauntletChallenge._meta.fields]

    def has_add_permission(self, request):  # type: ignore[override]
        return False

    def has_change_permission(self, request, obj=None):  # type: ignore[override]
        # Balances move only through the challenge lifecycle.
        return False
