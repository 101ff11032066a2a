from __future__ import annotations

from dataclasses import dataclass

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from apps.core.models import BaseModel

# Bump when a category is added or renamed; shared by ledger, config and challenges.
CATEGORY_SCHEMA_VERSION = "v1"


class ContributionCategory(models.TextChoices):
    GITHUB_REPO = "githubRepoPoints", "GitHub repo points"
    PEER_REVIEW = "peerReviewPoints", "Peer review points"
    CODE = "codeContributions", "Code contributions"
    CONTENT = "contentCreation", "Content creation"
    COMMUNITY = "communityEngagement", "Community engagement"
    GAME_PUBLICATION = "gamePublicationPoints", "Game publication points"
    TOTAL = "totalPoints", "Other category points"


CATEGORY_FIELDS: dict[str, str] = {
    ContributionCategory.GITHUB_REPO: "github_repo_points",
    ContributionCategory.PEER_REVIEW: "peer_review_points",
    ContributionCategory.CODE: "code_contributions",
    ContributionCategory.CONTENT: "content_creation",
    ContributionCategory.COMMUNITY: "community_engagement",
    ContributionCategory.GAME_PUBLICATION: "game_publication_points",
    ContributionCategory.TOTAL: "total_points",
}

# Sub-categories folded into total_points through the "other" weights.
OTHER_SUB_CATEGORIES: tuple[str, ...] = (
    ContributionCategory.CODE,
    ContributionCategory.CONTENT,
    ContributionCategory.COMMUNITY,
    ContributionCategory.GAME_PUBLICATION,
)

TRANSFERABLE_CATEGORIES: tuple[str, ...] = (
    ContributionCategory.GITHUB_REPO,
    ContributionCategory.PEER_REVIEW,
    ContributionCategory.TOTAL,
)


class ContributionType(models.TextChoices):
    VISUALIZATION = "visualization", "Visualization"
    SKETCH = "sketch", "Sketch"
    INSTRUMENT = "instrument", "Instrument"
    QUESTION = "question", "Question"
    ANSWER = "answer", "Answer"
    GAME_PUBLICATION = "game_publication", "Game publication"
    PEER_REVIEW = "peer_review", "Peer review"
    GAME_UPDATE = "game_update", "Game update"


CONTRIBUTION_POINTS: dict[str, tuple[str, int]] = {
    ContributionType.VISUALIZATION: (ContributionCategory.CONTENT, 8),
    ContributionType.SKETCH: (ContributionCategory.CODE, 10),
    ContributionType.INSTRUMENT: (ContributionCategory.CONTENT, 8),
    ContributionType.QUESTION: (ContributionCategory.COMMUNITY, 5),
    ContributionType.ANSWER: (ContributionCategory.COMMUNITY, 3),
    ContributionType.GAME_PUBLICATION: (ContributionCategory.GAME_PUBLICATION, 50),
    ContributionType.PEER_REVIEW: (ContributionCategory.PEER_REVIEW, 25),
    ContributionType.GAME_UPDATE: (ContributionCategory.GAME_PUBLICATION, 10),
}


@dataclass(frozen=True)
class ContributionMetrics:
    github_repo_points: float = 0.0
    peer_review_points: float = 0.0
    code_contributions: float = 0.0
    content_creation: float = 0.0
    community_engagement: float = 0.0
    game_publication_points: float = 0.0
    total_points: float = 0.0

    def get(self, category: str) -> float:
        return float(getattr(self, CATEGORY_FIELDS[category]))

    def as_dict(self) -> dict[str, float]:
        return {category: self.get(category) for category in CATEGORY_FIELDS}


class UserContribution(BaseModel):
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="contribution",
    )
    username = models.CharField(max_length=150)

    github_repo_points = models.FloatField(default=0)
    peer_review_points = models.FloatField(default=0)
    code_contributions = models.FloatField(default=0)
    content_creation = models.FloatField(default=0)
    community_engagement = models.FloatField(default=0)
    game_publication_points = models.FloatField(default=0)
    total_points = models.FloatField(default=0, help_text="Weighted sum of the other sub-categories.")

    win_probability = models.FloatField(default=0)
    win_count = models.PositiveIntegerField(default=0)
    last_calculated = models.DateTimeField(null=True, blank=True)

    class Meta:
        indexes = [
            models.Index(fields=["total_points"], name="contrib_total_points_idx"),
        ]
        constraints = [
            *[
                models.CheckConstraint(condition=models.Q(**{f"{field}__gte": 0}), name=f"contrib_{field}_gte_0")
                for field in CATEGORY_FIELDS.values()
            ],
            models.CheckConstraint(
                condition=models.Q(win_probability__gte=0) & models.Q(win_probability__lte=1),
                name="contrib_win_probability_range",
            ),
        ]

    @property
    def metrics(self) -> ContributionMetrics:
        return ContributionMetrics(**{field: float(getattr(self, field)) for field in CATEGORY_FIELDS.values()})

    def __str__(self) -> str:  # pragma: no cover - debug helper
        return f"UserContribution<{self.username}:{self.win_probability:.4f}>"


class PointTransfer(BaseModel):
    """
    Append-only audit row for points moving between two users.

    Corrections are new rows; existing rows are never updated or deleted.
    """

    class ContextType(models.TextChoices):
        MANUAL_TRANSFER = "manual_transfer", "Manual transfer"
        GAUNTLET_SETTLEMENT = "gauntlet_settlement", "Gauntlet settlement"
        GAUNTLET_FORFEITURE = "gauntlet_forfeiture", "Gauntlet forfeiture"

    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="points_sent",
    )
    sender_username = models.CharField(max_length=150)
    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="points_received",
    )
    recipient_username = models.CharField(max_length=150)
    amount = models.FloatField()
    point_type = models.CharField(max_length=32, choices=ContributionCategory.choices)
    memo = models.CharField(max_length=255, blank=True)
    context = models.JSONField(default=dict, blank=True)
    timestamp = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["-timestamp", "-created_at"]
        indexes = [
            models.Index(fields=["sender", "timestamp"], name="transfer_sender_ts_idx"),
            models.Index(fields=["recipient", "timestamp"], name="transfer_recipient_ts_idx"),
        ]
        constraints = [
            models.CheckConstraint(condition=models.Q(amount__gt=0), name="transfer_amount_gt_0"),
        ]

    def save(self, *args, **kwargs) -> None:  # type: ignore[override]
        if not self._state.adding:
            raise ValidationError("PointTransfer rows are immutable. Create a new transfer instead.")
        super().save(*args, **kwargs)

    def delete(self, using=None, keep_parents=False):  # type: ignore[override]
        raise ValidationError("PointTransfer rows are immutable; deletion is not allowed.")

    def __str__(self) -> str:  # pragma: no cover - debug helper
        return f"PointTransfer<{self.sender_username}->{self.recipient_username}:{self.amount}{self.point_type}>"
