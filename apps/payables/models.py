from __future__ import annotations

import uuid

from django.conf import settings
from django.db import models

from apps.core.models import BaseModel

WEIGHT_FIELDS = (
    "github_platform_weight",
    "peer_review_weight",
    "other_contributions_weight",
    "game_publication_weight",
    "community_weight",
    "code_weight",
    "content_weight",
)


class PayoutConfig(BaseModel):
    """Singleton row holding the payout pool and the weighting scheme."""

    singleton_key = models.PositiveSmallIntegerField(default=1, unique=True, editable=False)
    total_pool = models.PositiveIntegerField(default=0)
    batch_size = models.PositiveIntegerField(
        default=100,
        help_text="Informational: suggested units per scheduled run. Executions draw exactly the requested amount.",
    )

    github_platform_weight = models.FloatField(default=0.4)
    peer_review_weight = models.FloatField(default=0.4)
    other_contributions_weight = models.FloatField(default=0.2)

    game_publication_weight = models.FloatField(default=0.25)
    community_weight = models.FloatField(default=0.15)
    code_weight = models.FloatField(default=0.05)
    content_weight = models.FloatField(default=0.05)

    next_scheduled_run = models.DateTimeField(null=True, blank=True)
    last_updated = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.CheckConstraint(condition=models.Q(**{f"{field}__gte": 0}), name=f"payables_{field}_gte_0")
            for field in WEIGHT_FIELDS
        ]

    def __str__(self) -> str:  # pragma: no cover - debug helper
        return f"PayoutConfig<pool={self.total_pool}>"


class PayoutRecord(BaseModel):
    class Status(models.TextChoices):
        COMPLETED = "completed", "Completed"
        FAILED = "failed", "Failed"
        REQUIRES_STRIPE_SETUP = "requires_stripe_setup", "Requires Stripe setup"
        EXPIRED = "expired", "Expired"

    batch_id = models.UUIDField(default=uuid.uuid4, db_index=True)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="payout_records",
    )
    username = models.CharField(max_length=150)
    amount = models.PositiveIntegerField(default=1)
    probability = models.FloatField(default=0)
    status = models.CharField(max_length=32, choices=Status.choices)
    transfer_id = models.CharField(max_length=255, blank=True, null=True)
    transfer_error = models.TextField(blank=True, default="")
    expires_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "expires_at"], name="payables_status_expiry_idx"),
            models.Index(fields=["user", "created_at"], name="payables_user_created_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover - debug helper
        return f"PayoutRecord<{self.batch_id}:{self.username}:{self.status}>"
