from __future__ import annotations

from django.apps import AppConfig


class PayablesConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.payables"
    verbose_name = "Random Payables"
