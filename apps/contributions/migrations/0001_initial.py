from __future__ import annotations

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

import libs.idgen

POINT_FIELDS = (
    "github_repo_points",
    "peer_review_points",
    "code_contributions",
    "content_creation",
    "community_engagement",
    "game_publication_points",
    "total_points",
)

CATEGORY_CHOICES = [
    ("githubRepoPoints", "GitHub repo points"),
    ("peerReviewPoints", "Peer review points"),
    ("codeContributions", "Code contributions"),
    ("contentCreation", "Content creation"),
    ("communityEngagement", "Community engagement"),
    ("gamePublicationPoints", "Game publication points"),
    ("totalPoints", "Other category points"),
]


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="UserContribution",
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
                ("username", models.CharField(max_length=150)),
                ("github_repo_points", models.FloatField(default=0)),
                ("peer_review_points", models.FloatField(default=0)),
                ("code_contributions", models.FloatField(default=0)),
                ("content_creation", models.FloatField(default=0)),
                ("community_engagement", models.FloatField(default=0)),
                ("game_publication_points", models.FloatField(default=0)),
                (
                    "total_points",
                    models.FloatField(default=0, help_text="Weighted sum of the other sub-categories."),
                ),
                ("win_probability", models.FloatField(default=0)),
                ("win_count", models.PositiveIntegerField(default=0)),
                ("last_calculated", models.DateTimeField(blank=True, null=True)),
                (
                    "user",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="contribution",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "indexes": [models.Index(fields=["total_points"], name="contrib_total_points_idx")],
                "constraints": [
                    *[
                        models.CheckConstraint(
                            condition=models.Q(**{f"{field}__gte": 0}),
                            name=f"contrib_{field}_gte_0",
                        )
                        for field in POINT_FIELDS
                    ],
                    models.CheckConstraint(
                        condition=models.Q(win_probability__gte=0) & models.Q(win_probability__lte=1),
                        name="contrib_win_probability_range",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PointTransfer",
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
                ("sender_username", models.CharField(max_length=150)),
                ("recipient_username", models.CharField(max_length=150)),
                ("amount", models.FloatField()),
                ("point_type", models.CharField(choices=CATEGORY_CHOICES, max_length=32)),
                ("memo", models.CharField(blank=True, max_length=255)),
                ("context", models.JSONField(blank=True, default=dict)),
                ("timestamp", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "recipient",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="points_received",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "sender",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="points_sent",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-timestamp", "-created_at"],
                "indexes": [
                    models.Index(fields=["sender", "timestamp"], name="transfer_sender_ts_idx"),
                    models.Index(fields=["recipient", "timestamp"], name="transfer_recipient_ts_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(amount__gt=0), name="transfer_amount_gt_0"),
                ],
            },
        ),
    ]
