from __future__ import annotations

from unittest.mock import patch

import pytest
from django.core.exceptions import ValidationError
from django.test import override_settings

from apps.contributions.models import ContributionCategory, ContributionType, PointTransfer, UserContribution
from apps.contributions.services.ledger import (
    decrement,
    get_balance,
    increment,
    record_contribution,
    refresh_weighted_total,
    transfer_points,
)
from apps.contributions.services.weights import OtherWeights
from apps.core.errors import InsufficientBalance, LedgerValidationError
from apps.users.models import User


def _user(handle: str) -> User:
    return User.objects.create_user(
        email=f"{handle}@example.com",
        password="pass1234",
        handle=handle,
        name=handle.title(),
    )


@pytest.mark.django_db
def test_increment_creates_row_and_adds_points():
    user = _user("alice")

    increment(user=user, category=ContributionCategory.GITHUB_REPO, amount=40)
    increment(user=user, category=ContributionCategory.GITHUB_REPO, amount=2.5)

    assert get_balance(user, ContributionCategory.GITHUB_REPO) == pytest.approx(42.5)
    row = UserContribution.objects.get(user=user)
    assert row.username == "alice"
    assert row.total_points == 0


@pytest.mark.django_db
def test_sub_category_increment_adds_weighted_delta_to_total():
    user = _user("bob")

    increment(user=user, category=ContributionCategory.GAME_PUBLICATION, amount=100)
    increment(user=user, category=ContributionCategory.CODE, amount=10)

    row = UserContribution.objects.get(user=user)
    assert row.game_publication_points == 100
    assert row.code_contributions == 10
    assert row.total_points == pytest.approx(100 * 0.25 + 10 * 0.05)


@pytest.mark.django_db
def test_decrement_rejects_overdraw_without_mutation():
    user = _user("carol")
    increment(user=user, category=ContributionCategory.PEER_REVIEW, amount=15)

    assert decrement(user=user, category=ContributionCategory.PEER_REVIEW, amount=20) is False
    assert get_balance(user, ContributionCategory.PEER_REVIEW) == 15

    assert decrement(user=user, category=ContributionCategory.PEER_REVIEW, amount=15) is True
    assert get_balance(user, ContributionCategory.PEER_REVIEW) == 0


@pytest.mark.django_db
def test_decrement_for_unknown_user_returns_false():
    user = _user("nobody")

    assert decrement(user=user, category=ContributionCategory.TOTAL, amount=1) is False
    assert not UserContribution.objects.filter(user=user).exists()


@pytest.mark.django_db
def test_sub_category_decrement_floors_total_at_zero():
    user = _user("dave")
    increment(user=user, category=ContributionCategory.COMMUNITY, amount=20)
    UserContribution.objects.filter(user=user).update(total_points=1)

    assert decrement(user=user, category=ContributionCategory.COMMUNITY, amount=20) is True

    row = UserContribution.objects.get(user=user)
    assert row.community_engagement == 0
    assert row.total_points == 0


@pytest.mark.django_db
@pytest.mark.parametrize("amount", [0, -5, "abc", float("inf")])
def test_invalid_amounts_rejected(amount):
    user = _user("erin")

    with pytest.raises(LedgerValidationError) as excinfo:
        increment(user=user, category=ContributionCategory.TOTAL, amount=amount)

    assert excinfo.value.error_code == "invalid_amount"


@pytest.mark.django_db
def test_unknown_category_rejected():
    user = _user("frank")

    with pytest.raises(LedgerValidationError) as excinfo:
        increment(user=user, category="karmaPoints", amount=1)

    assert excinfo.value.error_code == "unknown_category"


@pytest.mark.django_db
def test_record_contribution_uses_points_table():
    user = _user("gina")

    awarded = record_contribution(user, ContributionType.GAME_PUBLICATION, count=2)
    record_contribution(user, ContributionType.ANSWER)

    assert awarded == 100
    row = UserContribution.objects.get(user=user)
    assert row.game_publication_points == 100
    assert row.community_engagement == 3
    assert row.total_points == pytest.approx(100 * 0.25 + 3 * 0.15)


@pytest.mark.django_db
def test_refresh_weighted_total_rebuilds_from_sub_categories():
    user = _user("hank")
    increment(user=user, category=ContributionCategory.CONTENT, amount=8)
    UserContribution.objects.filter(user=user).update(total_points=999)

    total = refresh_weighted_total(user, OtherWeights(content=0.5))

    assert total == pytest.approx(4)
    assert UserContribution.objects.get(user=user).total_points == pytest.approx(4)


@pytest.mark.django_db
def test_transfer_points_moves_balance_and_logs_transfer():
    sender = _user("ivy")
    recipient = _user("jack")
    increment(user=sender, category=ContributionCategory.TOTAL, amount=50)

    transfer = transfer_points(
        sender=sender,
        recipient_username="JACK",
        category=ContributionCategory.TOTAL,
        amount=20,
        memo="thanks",
    )

    assert get_balance(sender, ContributionCategory.TOTAL) == 30
    assert get_balance(recipient, ContributionCategory.TOTAL) == 20
    assert transfer.recipient_id == recipient.id
    assert transfer.context == {"type": PointTransfer.ContextType.MANUAL_TRANSFER}
    assert transfer.memo == "thanks"


@pytest.mark.django_db
def test_transfer_points_rejects_bad_requests():
    sender = _user("kim")
    _user("lee")
    increment(user=sender, category=ContributionCategory.GITHUB_REPO, amount=5)

    with pytest.raises(InsufficientBalance):
        transfer_points(sender=sender, recipient_username="lee", category=ContributionCategory.GITHUB_REPO, amount=6)
    with pytest.raises(LedgerValidationError) as self_transfer:
        transfer_points(sender=sender, recipient_username="kim", category=ContributionCategory.GITHUB_REPO, amount=1)
    with pytest.raises(LedgerValidationError) as missing:
        transfer_points(sender=sender, recipient_username="ghost", category=ContributionCategory.GITHUB_REPO, amount=1)
    with pytest.raises(LedgerValidationError) as wrong_category:
        transfer_points(sender=sender, recipient_username="lee", category=ContributionCategory.CODE, amount=1)

    assert self_transfer.value.error_code == "self_transfer"
    assert missing.value.error_code == "recipient_not_found"
    assert wrong_category.value.error_code == "unknown_category"
    assert get_balance(sender, ContributionCategory.GITHUB_REPO) == 5
    assert PointTransfer.objects.count() == 0


@pytest.mark.django_db
@override_settings(LEDGER_USE_TRANSACTIONS=False)
def test_transfer_compensates_when_audit_row_fails():
    sender = _user("mia")
    recipient = _user("ned")
    increment(user=sender, category=ContributionCategory.PEER_REVIEW, amount=10)

    with patch.object(PointTransfer.objects, "create", side_effect=RuntimeError("db down")):
        with pytest.raises(RuntimeError):
            transfer_points(
                sender=sender,
                recipient_username="ned",
                category=ContributionCategory.PEER_REVIEW,
                amount=4,
            )

    assert get_balance(sender, ContributionCategory.PEER_REVIEW) == 10
    assert get_balance(recipient, ContributionCategory.PEER_REVIEW) == 0


@pytest.mark.django_db
def test_point_transfer_is_immutable():
    sender = _user("olga")
    _user("pete")
    increment(user=sender, category=ContributionCategory.TOTAL, amount=5)
    transfer = transfer_points(sender=sender, recipient_username="pete", category=ContributionCategory.TOTAL, amount=5)

    transfer.memo = "edited"
    with pytest.raises(ValidationError):
        transfer.save()
    with pytest.raises(ValidationError):
        transfer.delete()


@pytest.mark.django_db
def test_mutations_queue_recompute_after_commit(django_capture_on_commit_callbacks):
    user = _user("quinn")

    with patch("apps.contributions.tasks.recompute_probabilities_task.delay") as mocked_delay:
        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            increment(user=user, category=ContributionCategory.TOTAL, amount=3)
            assert mocked_delay.call_count == 0

    assert len(callbacks) == 1
    mocked_delay.assert_called_once_with()


@pytest.mark.django_db
def test_recompute_enqueue_failure_is_not_raised(django_capture_on_commit_callbacks):
    user = _user("rita")

    with patch(
        "apps.contributions.tasks.recompute_probabilities_task.delay",
        side_effect=ConnectionError("broker down"),
    ):
        with django_capture_on_commit_callbacks(execute=True):
            increment(user=user, category=ContributionCategory.TOTAL, amount=3)

    assert get_balance(user, ContributionCategory.TOTAL) == 3
