from __future__ import annotations

import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

import libs.idgen

WEIGHT_FIELDS = (
    "github_platform_weight",
    "peer_review_weight",
    "other_contributions_weight",
    "game_publication_weight",
    "community_weight",
    "code_weight",
    "content_weight",
)


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="PayoutConfig",
            fields=[
                (
                    "id",
                    models.BigIntegerField(
                        default=libs.idgen.generate_id,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("singleton_key", models.PositiveSmallIntegerField(default=1, editable=False, unique=True)),
                ("total_pool", models.PositiveIntegerField(default=0)),
                (
                    "batch_size",
                    models.PositiveIntegerField(
                        default=100,
                        help_text="Informational: suggested units per scheduled run. Executions draw exactly the requested amount.",
                    ),
                ),
                ("github_platform_weight", models.FloatField(default=0.4)),
                ("peer_review_weight", models.FloatField(default=0.4)),
                ("other_contributions_weight", models.FloatField(default=0.2)),
                ("game_publication_weight", models.FloatField(default=0.25)),
                ("community_weight", models.FloatField(default=0.15)),
                ("code_weight", models.FloatField(default=0.05)),
                ("content_weight", models.FloatField(default=0.05)),
                ("next_scheduled_run", models.DateTimeField(blank=True, null=True)),
                ("last_updated", models.DateTimeField(auto_now=True)),
            ],
            options={
                "constraints": [
                    models.CheckConstraint(condition=models.Q(**{f"{field}__gte": 0}), name=f"payables_{field}_gte_0")
                    for field in WEIGHT_FIELDS
                ],
            },
        ),
        migrations.CreateModel(
            name="PayoutRecord",
            fields=[
                (
                    "id",
                    models.BigIntegerField(
                        default=libs.idgen.generate_id,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("batch_id", models.UUIDField(db_index=True, default=uuid.uuid4)),
                ("username", models.CharField(max_length=150)),
                ("amount", models.PositiveIntegerField(default=1)),
                ("probability", models.FloatField(default=0)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                            ("requires_stripe_setup", "Requires Stripe setup"),
                            ("expired", "Expired"),
                        ],
                        max_length=32,
                    ),
                ),
                ("transfer_id", models.CharField(blank=True, max_length=255, null=True)),
                ("transfer_error", models.TextField(blank=True, default="")),
                ("expires_at", models.DateTimeField(blank=True, null=True)),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payout_records",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status", "expires_at"], name="payables_status_expiry_idx"),
                    models.Index(fields=["user", "created_at"], name="payables_user_created_idx"),
                ],
            },
        ),
    ]
