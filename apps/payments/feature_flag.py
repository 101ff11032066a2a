from __future__ import annotations

import os

from django.conf import settings


def payouts_enabled() -> bool:
    flags = getattr(settings, "FEATURE_FLAGS", {})
    return flags.get("payouts", False)


def stripe_configured() -> bool:
    return bool(os.getenv("STRIPE_API_KEY"))
