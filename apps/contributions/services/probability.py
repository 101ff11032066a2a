"""
Win probability derivation.

Each top-level bucket (github, peer review, other) carries a configured
weight. Buckets nobody has points in are dropped and the remaining weights
are renormalized, so an empty bucket never caps everyone's probability.
When every bucket is empty all users share 1/N.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Dict, Iterable, Protocol, Sequence

from django.conf import settings
from django.utils import timezone

from apps.contributions.models import CATEGORY_FIELDS, ContributionCategory, UserContribution
from apps.contributions.services.weights import TopLevelWeights
from apps.users.models import User

logger = logging.getLogger(__name__)

TOP_LEVEL_FIELDS = {
    ContributionCategory.GITHUB_REPO: CATEGORY_FIELDS[ContributionCategory.GITHUB_REPO],
    ContributionCategory.PEER_REVIEW: CATEGORY_FIELDS[ContributionCategory.PEER_REVIEW],
    ContributionCategory.TOTAL: CATEGORY_FIELDS[ContributionCategory.TOTAL],
}


class ContributionRow(Protocol):
    id: int
    github_repo_points: float
    peer_review_points: float
    total_points: float


@dataclass(frozen=True)
class ContributionSnapshot:
    id: int
    github_repo_points: float = 0.0
    peer_review_points: float = 0.0
    total_points: float = 0.0


def compute_win_probabilities(rows: Sequence[ContributionRow], weights: TopLevelWeights) -> Dict[int, float]:
    if not rows:
        return {}

    totals = {
        category: sum(max(float(getattr(row, field)), 0.0) for row in rows)
        for category, field in TOP_LEVEL_FIELDS.items()
    }
    active = {
        category: weight
        for category, weight in weights.by_category().items()
        if totals[category] > 0 and weight > 0
    }
    weight_sum = sum(active.values())
    if weight_sum <= 0:
        uniform = 1.0 / len(rows)
        return {row.id: uniform for row in rows}

    normalized = {category: weight / weight_sum for category, weight in active.items()}
    probabilities: Dict[int, float] = {}
    for row in rows:
        share = 0.0
        for category, weight in normalized.items():
            points = max(float(getattr(row, TOP_LEVEL_FIELDS[category])), 0.0)
            share += points / totals[category] * weight
        probabilities[row.id] = min(max(share, 0.0), 1.0)
    return probabilities


def recompute_all(
    snapshot: Iterable[ContributionRow] | None = None,
    weights: TopLevelWeights | None = None,
) -> int:
    """
    Rewrite win_probability for every row in ``snapshot`` (all rows by default).

    Only win_probability and last_calculated are written; balances are left to
    the ledger so concurrent increments are never overwritten.
    """
    if weights is None:
        from apps.payables.services.config import top_level_weights

        weights = top_level_weights()
    rows = list(snapshot) if snapshot is not None else list(
        UserContribution.objects.only("id", *TOP_LEVEL_FIELDS.values())
    )
    probabilities = compute_win_probabilities(rows, weights)
    now = timezone.now()
    UserContribution.objects.bulk_update(
        [UserContribution(id=row_id, win_probability=value, last_calculated=now) for row_id, value in probabilities.items()],
        ["win_probability", "last_calculated"],
        batch_size=500,
    )
    logger.info("contributions.recompute.done users=%s", len(probabilities))
    return len(probabilities)


def _ttl() -> timedelta:
    return timedelta(hours=int(getattr(settings, "PAYABLES_PROBABILITY_TTL_HOURS", 24)))


def get_win_probability(user: User) -> float:
    contribution = UserContribution.objects.filter(user=user).only("id", "win_probability", "last_calculated").first()
    if contribution is None:
        return 0.0
    if contribution.last_calculated is None or contribution.last_calculated < timezone.now() - _ttl():
        recompute_all()
        contribution.refresh_from_db(fields=["win_probability", "last_calculated"])
    return float(contribution.win_probability)
