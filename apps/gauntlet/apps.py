from __future__ import annotations

from django.apps import AppConfig


class GauntletConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.gauntlet"
    verbose_name = "Gauntlet"
