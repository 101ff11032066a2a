from __future__ import annotations

from django.apps import AppConfig


class ContributionsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.contributions"
    verbose_name = "Contributions"
