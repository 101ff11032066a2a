from __future__ import annotations

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

import libs.idgen

TEAM_CHOICES = [("A", "Team A"), ("B", "Team B")]


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="GauntletChallenge",
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
                ("game_id", models.CharField(db_index=True, max_length=64)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("active", "Active"),
                            ("in_progress", "In progress"),
                            ("completed", "Completed"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="pending",
                        max_length=16,
                    ),
                ),
                ("challenger_username", models.CharField(max_length=150)),
                ("challenger_team", models.CharField(choices=TEAM_CHOICES, max_length=1)),
                ("challenger_wager", models.PositiveIntegerField()),
                ("challenger_setup", models.JSONField(blank=True, default=dict)),
                ("challenger_has_setup", models.BooleanField(default=False)),
                ("opponent_username", models.CharField(blank=True, max_length=150)),
                ("opponent_team", models.CharField(blank=True, choices=TEAM_CHOICES, max_length=1)),
                ("opponent_setup", models.JSONField(blank=True, null=True)),
                ("opponent_has_setup", models.BooleanField(default=False)),
                ("opponent_wager", models.PositiveIntegerField(help_text="Stake quoted for whoever joins.")),
                (
                    "wager_category",
                    models.CharField(
                        choices=[
                            ("githubRepoPoints", "GitHub repo points"),
                            ("peerReviewPoints", "Peer review points"),
                            ("codeContributions", "Code contributions"),
                            ("contentCreation", "Content creation"),
                            ("communityEngagement", "Community engagement"),
                            ("gamePublicationPoints", "Game publication points"),
                            ("totalPoints", "Other category points"),
                        ],
                        default="totalPoints",
                        max_length=32,
                    ),
                ),
                ("locked_settings", models.JSONField(blank=True, default=list)),
                ("winner", models.CharField(blank=True, choices=TEAM_CHOICES, max_length=1)),
                ("started_at", models.DateTimeField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                (
                    "challenger",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="gauntlet_challenges_created",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "opponent",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="gauntlet_challenges_joined",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "started_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["status", "created_at"], name="gauntlet_status_created_idx")],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(challenger_wager__gt=0), name="gauntlet_challenger_wager_gt_0"
                    ),
                    models.CheckConstraint(condition=models.Q(opponent_wager__gt=0), name="gauntlet_opponent_wager_gt_0"),
                ],
            },
        ),
    ]
