from __future__ import annotations

from django.conf import settings
from django.db import models

from apps.core.models import BaseModel


class PayoutAccount(BaseModel):
    """Connected payment account a user can receive payouts on."""

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="payout_account",
    )
    stripe_account_id = models.CharField(max_length=255, unique=True, null=True, blank=True)
    payouts_enabled = models.BooleanField(default=False)
    details_submitted = models.BooleanField(default=False)
    last_synced_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        indexes = [
            models.Index(fields=["stripe_account_id"], name="payments_acct_stripe_idx"),
        ]

    @property
    def is_connected(self) -> bool:
        return bool(self.stripe_account_id)

    def __str__(self) -> str:  # pragma: no cover - debug helper
        return f"PayoutAccount<{self.user_id}:{'on' if self.payouts_enabled else 'off'}>"
