from __future__ import annotations

from datetime import timedelta

import pytest
from django.test import override_settings
from django.utils import timezone

from apps.contributions.models import ContributionCategory, ContributionMetrics, UserContribution
from apps.contributions.services.ledger import increment
from apps.contributions.services.probability import (
    ContributionSnapshot,
    compute_win_probabilities,
    get_win_probability,
    recompute_all,
)
from apps.contributions.services.weights import OtherWeights, TopLevelWeights, get_weighted_points
from apps.users.models import User

DEFAULT_WEIGHTS = TopLevelWeights(github=0.4, peer_review=0.4, other=0.2)


def _user(handle: str) -> User:
    return User.objects.create_user(
        email=f"{handle}@example.com",
        password="pass1234",
        handle=handle,
        name=handle.title(),
    )


def test_empty_bucket_weight_is_redistributed():
    rows = [
        ContributionSnapshot(id=1, github_repo_points=100),
        ContributionSnapshot(id=2, peer_review_points=50),
    ]

    probabilities = compute_win_probabilities(rows, DEFAULT_WEIGHTS)

    assert probabilities[1] == pytest.approx(0.5)
    assert probabilities[2] == pytest.approx(0.5)


def test_probabilities_sum_to_one_when_any_bucket_active():
    rows = [
        ContributionSnapshot(id=1, github_repo_points=30, peer_review_points=5, total_points=2.5),
        ContributionSnapshot(id=2, github_repo_points=10, total_points=7.5),
        ContributionSnapshot(id=3, peer_review_points=20),
        ContributionSnapshot(id=4),
    ]

    probabilities = compute_win_probabilities(rows, DEFAULT_WEIGHTS)

    assert sum(probabilities.values()) == pytest.approx(1.0)
    assert probabilities[4] == 0
    # github 30/40*0.4 + peer 5/25*0.4 + other 2.5/10*0.2
    assert probabilities[1] == pytest.approx(0.3 + 0.08 + 0.05)


def test_uniform_probability_when_nobody_has_points():
    rows = [ContributionSnapshot(id=1), ContributionSnapshot(id=2), ContributionSnapshot(id=3)]

    probabilities = compute_win_probabilities(rows, DEFAULT_WEIGHTS)

    assert len(probabilities) == 3
    assert all(value == pytest.approx(1 / 3) for value in probabilities.values())


def test_zero_weight_bucket_is_ignored():
    rows = [
        ContributionSnapshot(id=1, github_repo_points=10),
        ContributionSnapshot(id=2, total_points=10),
    ]

    probabilities = compute_win_probabilities(rows, TopLevelWeights(github=0.0, peer_review=0.5, other=0.5))

    assert probabilities[1] == 0.0
    assert probabilities[2] == pytest.approx(1.0)


def test_no_rows_yields_nothing():
    assert compute_win_probabilities([], DEFAULT_WEIGHTS) == {}


def test_weighted_points_folds_sub_categories():
    metrics = ContributionMetrics(
        code_contributions=10,
        content_creation=8,
        community_engagement=5,
        game_publication_points=50,
        github_repo_points=1_000,
    )

    assert get_weighted_points(metrics, OtherWeights()) == pytest.approx(0.5 + 0.4 + 0.75 + 12.5)


@pytest.mark.django_db
def test_recompute_all_writes_probabilities_only():
    alice = _user("alice")
    bob = _user("bob")
    increment(user=alice, category=ContributionCategory.GITHUB_REPO, amount=100)
    increment(user=bob, category=ContributionCategory.PEER_REVIEW, amount=50)

    updated = recompute_all(weights=DEFAULT_WEIGHTS)

    assert updated == 2
    alice_row = UserContribution.objects.get(user=alice)
    bob_row = UserContribution.objects.get(user=bob)
    assert alice_row.win_probability == pytest.approx(0.5)
    assert bob_row.win_probability == pytest.approx(0.5)
    assert alice_row.github_repo_points == 100
    assert alice_row.last_calculated is not None


@pytest.mark.django_db
def test_recompute_all_accepts_injected_snapshot():
    alice = _user("alice")
    increment(user=alice, category=ContributionCategory.GITHUB_REPO, amount=1)
    row = UserContribution.objects.get(user=alice)

    recompute_all(snapshot=[ContributionSnapshot(id=row.id, total_points=3)], weights=DEFAULT_WEIGHTS)

    row.refresh_from_db()
    assert row.win_probability == pytest.approx(1.0)
    assert row.github_repo_points == 1
    assert row.total_points == 0


@pytest.mark.django_db
def test_get_win_probability_uses_cached_value_within_ttl():
    alice = _user("alice")
    increment(user=alice, category=ContributionCategory.GITHUB_REPO, amount=10)
    UserContribution.objects.filter(user=alice).update(win_probability=0.25, last_calculated=timezone.now())

    assert get_win_probability(alice) == pytest.approx(0.25)


@pytest.mark.django_db
@override_settings(PAYABLES_PROBABILITY_TTL_HOURS=24)
def test_get_win_probability_refreshes_stale_value():
    alice = _user("alice")
    increment(user=alice, category=ContributionCategory.GITHUB_REPO, amount=10)
    UserContribution.objects.filter(user=alice).update(
        win_probability=0.25,
        last_calculated=timezone.now() - timedelta(hours=25),
    )

    assert get_win_probability(alice) == pytest.approx(1.0)


@pytest.mark.django_db
def test_get_win_probability_unknown_user_is_zero():
    assert get_win_probability(_user("ghost")) == 0.0
