from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from apps.contributions.models import ContributionCategory, ContributionMetrics


@dataclass(frozen=True)
class TopLevelWeights:
    github: float = 0.4
    peer_review: float = 0.4
    other: float = 0.2

    def by_category(self) -> Dict[str, float]:
        return {
            ContributionCategory.GITHUB_REPO: self.github,
            ContributionCategory.PEER_REVIEW: self.peer_review,
            ContributionCategory.TOTAL: self.other,
        }


@dataclass(frozen=True)
class OtherWeights:
    game_publication: float = 0.25
    community: float = 0.15
    code: float = 0.05
    content: float = 0.05

    def by_category(self) -> Dict[str, float]:
        return {
            ContributionCategory.GAME_PUBLICATION: self.game_publication,
            ContributionCategory.COMMUNITY: self.community,
            ContributionCategory.CODE: self.code,
            ContributionCategory.CONTENT: self.content,
        }

    def weight_for(self, category: str) -> float:
        return self.by_category().get(category, 0.0)


def get_weighted_points(metrics: ContributionMetrics, other_weights: OtherWeights) -> float:
    """Fold the "other" sub-categories into the single total_points figure."""
    return sum(metrics.get(category) * weight for category, weight in other_weights.by_category().items())
