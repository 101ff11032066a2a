from __future__ import annotations

from django.conf import settings
from django.db import models

from apps.contributions.models import ContributionCategory
from apps.core.models import BaseModel


class Team(models.TextChoices):
    A = "A", "Team A"
    B = "B", "Team B"

    @classmethod
    def opposite(cls, team: str) -> str:
        return cls.B if team == cls.A else cls.A


class GauntletChallenge(BaseModel):
    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        ACTIVE = "active", "Active"
        IN_PROGRESS = "in_progress", "In progress"
        COMPLETED = "completed", "Completed"
        CANCELLED = "cancelled", "Cancelled"

    game_id = models.CharField(max_length=64, db_index=True)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING)

    challenger = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="gauntlet_challenges_created",
    )
    challenger_username = models.CharField(max_length=150)
    challenger_team = models.CharField(max_length=1, choices=Team.choices)
    challenger_wager = models.PositiveIntegerField()
    challenger_setup = models.JSONField(default=dict, blank=True)
    challenger_has_setup = models.BooleanField(default=False)

    opponent = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="gauntlet_challenges_joined",
        null=True,
        blank=True,
    )
    opponent_username = models.CharField(max_length=150, blank=True)
    opponent_team = models.CharField(max_length=1, choices=Team.choices, blank=True)
    opponent_setup = models.JSONField(null=True, blank=True)
    opponent_has_setup = models.BooleanField(default=False)

    opponent_wager = models.PositiveIntegerField(help_text="Stake quoted for whoever joins.")
    wager_category = models.CharField(
        max_length=32,
        choices=ContributionCategory.choices,
        default=ContributionCategory.TOTAL,
    )
    locked_settings = models.JSONField(default=list, blank=True)

    winner = models.CharField(max_length=1, choices=Team.choices, blank=True)
    started_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="+",
        null=True,
        blank=True,
    )
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "created_at"], name="gauntlet_status_created_idx"),
        ]
        constraints = [
            models.CheckConstraint(condition=models.Q(challenger_wager__gt=0), name="gauntlet_challenger_wager_gt_0"),
            models.CheckConstraint(condition=models.Q(opponent_wager__gt=0), name="gauntlet_opponent_wager_gt_0"),
        ]

    @property
    def pot(self) -> int:
        return self.challenger_wager + self.opponent_wager

    def participant_ids(self) -> set[int]:
        return {pk for pk in (self.challenger_id, self.opponent_id) if pk is not None}

    def __str__(self) -> str:  # pragma: no cover - debug helper
        return f"GauntletChallenge<{self.game_id}:{self.status}>"
