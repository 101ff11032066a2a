from __future__ import annotations

import random
from datetime import timedelta
from typing import Any, Dict

import pytest
from django.test import override_settings
from django.utils import timezone

from apps.contributions.models import UserContribution
from apps.core.errors import LedgerValidationError
from apps.payables.models import PayoutRecord
from apps.payables.services.config import get_payout_config, update_payout_config
from apps.payables.services.executor import execute, retry_pending, simulate, weighted_random_selection
from apps.payments.capability import PayoutEligibility, PayoutTransferError, UnavailablePaymentCapability
from apps.users.models import User


class FixedRandom:
    def __init__(self, *values: float) -> None:
        self.values = list(values)

    def random(self) -> float:
        return self.values.pop(0)


class FakeCapability:
    """In-memory payment capability keyed by user id."""

    def __init__(self, eligible: Dict[int, str] | None = None, failing: set[int] | None = None) -> None:
        self.eligible = dict(eligible or {})
        self.failing = set(failing or ())
        self.transfers: list[dict[str, Any]] = []

    def eligibility(self, user_id: int) -> PayoutEligibility:
        destination = self.eligible.get(user_id)
        return PayoutEligibility(connected=destination is not None, enabled=destination is not None, destination=destination)

    def is_payout_eligible(self, user_id: int) -> bool:
        return self.eligibility(user_id).eligible

    def create_transfer(self, destination_account, amount_units, metadata, idempotency_key=None) -> str:
        if int(metadata["user_id"]) in self.failing:
            raise PayoutTransferError("card_declined")
        self.transfers.append(
            {
                "destination": destination_account,
                "amount_units": amount_units,
                "metadata": metadata,
                "idempotency_key": idempotency_key,
            }
        )
        return f"tr_{len(self.transfers)}"


def _contributor(handle: str, probability: float) -> User:
    user = User.objects.create_user(
        email=f"{handle}@example.com",
        password="pass1234",
        handle=handle,
        name=handle.title(),
    )
    UserContribution.objects.create(user=user, username=handle, win_probability=probability, last_calculated=timezone.now())
    return user


def _pool(amount: int) -> None:
    update_payout_config(total_pool=amount)


def test_weighted_random_selection_picks_by_cumulative_weight():
    weights = [0.2, 0.5, 0.3]

    assert weighted_random_selection(weights, FixedRandom(0.1)) == 0
    assert weighted_random_selection(weights, FixedRandom(0.2)) == 1
    assert weighted_random_selection(weights, FixedRandom(0.75)) == 2


def test_weighted_random_selection_without_weight_has_no_winner():
    assert weighted_random_selection([], FixedRandom(0.5)) == -1
    assert weighted_random_selection([0.0, 0.0], FixedRandom(0.5)) == -1


def test_weighted_random_selection_falls_back_to_last_index():
    assert weighted_random_selection([0.5, 0.5], FixedRandom(1.0)) == 1


@pytest.mark.django_db
def test_simulate_aggregates_without_side_effects():
    _contributor("alice", 0.75)
    _contributor("bob", 0.25)

    results = simulate(50, rng=random.Random(7))

    assert sum(row["amount_won"] for row in results) == 50
    assert [row["amount_won"] for row in results] == sorted((row["amount_won"] for row in results), reverse=True)
    assert PayoutRecord.objects.count() == 0


@pytest.mark.django_db
def test_simulate_with_no_contributors_returns_empty():
    assert simulate(5) == []


@pytest.mark.django_db
def test_execute_pool_only_moves_for_completed_units():
    paid = _contributor("paid", 0.5)
    declined = _contributor("declined", 0.5)
    _pool(10)
    capability = FakeCapability(
        eligible={paid.id: "acct_paid", declined.id: "acct_declined"},
        failing={declined.id},
    )

    # 0.1 -> first contributor, 0.9 -> second, 0.2 -> first
    batch_id = execute(3, rng=FixedRandom(0.1, 0.9, 0.2), capability=capability)

    records = PayoutRecord.objects.filter(batch_id=batch_id)
    assert records.count() == 3
    assert records.filter(status=PayoutRecord.Status.COMPLETED, user=paid).count() == 2
    failed = records.get(status=PayoutRecord.Status.FAILED)
    assert failed.user_id == declined.id
    assert failed.transfer_error == "card_declined"
    assert get_payout_config().total_pool == 8
    assert UserContribution.objects.get(user=paid).win_count == 2
    assert UserContribution.objects.get(user=declined).win_count == 0


@pytest.mark.django_db
def test_execute_transfer_uses_record_id_as_idempotency_key():
    winner = _contributor("winner", 1.0)
    _pool(1)
    capability = FakeCapability(eligible={winner.id: "acct_winner"})

    batch_id = execute(1, rng=FixedRandom(0.5), capability=capability)

    record = PayoutRecord.objects.get(batch_id=batch_id)
    assert record.transfer_id == "tr_1"
    assert capability.transfers[0]["idempotency_key"] == f"rp-payout-{record.id}"
    assert capability.transfers[0]["amount_units"] == 1
    assert capability.transfers[0]["metadata"]["batch_id"] == str(batch_id)


@pytest.mark.django_db
@override_settings(PAYABLES_CLAIM_WINDOW_DAYS=6)
def test_execute_parks_ineligible_winner_as_claim():
    winner = _contributor("pending", 1.0)
    _pool(5)

    batch_id = execute(2, rng=random.Random(1), capability=UnavailablePaymentCapability("disabled"))

    records = PayoutRecord.objects.filter(batch_id=batch_id)
    assert records.count() == 2
    assert set(records.values_list("status", flat=True)) == {PayoutRecord.Status.REQUIRES_STRIPE_SETUP}
    expected = timezone.now() + timedelta(days=6)
    for record in records:
        assert record.user_id == winner.id
        assert abs((record.expires_at - expected).total_seconds()) < 60
    assert get_payout_config().total_pool == 5


@pytest.mark.django_db
def test_execute_without_contributors_records_nothing():
    _pool(3)

    batch_id = execute(3, capability=FakeCapability())

    assert batch_id
    assert PayoutRecord.objects.count() == 0
    assert get_payout_config().total_pool == 3


@pytest.mark.django_db
@override_settings(PAYABLES_MAX_PAYOUT_AMOUNT=100)
def test_execute_validates_amount():
    _pool(50)

    with pytest.raises(LedgerValidationError) as too_small:
        execute(0, capability=FakeCapability())
    with pytest.raises(LedgerValidationError) as too_large:
        execute(101, capability=FakeCapability())
    with pytest.raises(LedgerValidationError) as over_pool:
        execute(51, capability=FakeCapability())

    assert too_small.value.error_code == "invalid_amount"
    assert too_large.value.error_code == "amount_too_large"
    assert over_pool.value.error_code == "pool_exceeded"


def _claim(user: User, *, expires_in: timedelta) -> PayoutRecord:
    return PayoutRecord.objects.create(
        user=user,
        username=user.handle,
        status=PayoutRecord.Status.REQUIRES_STRIPE_SETUP,
        probability=0.5,
        expires_at=timezone.now() + expires_in,
    )


@pytest.mark.django_db
def test_retry_pending_expires_pays_and_skips():
    ready = _contributor("ready", 0.5)
    waiting = _contributor("waiting", 0.3)
    broken = _contributor("broken", 0.1)
    late = _contributor("late", 0.1)
    _pool(10)

    ready_claim = _claim(ready, expires_in=timedelta(days=2))
    waiting_claim = _claim(waiting, expires_in=timedelta(days=2))
    broken_claim = _claim(broken, expires_in=timedelta(days=2))
    late_claim = _claim(late, expires_in=-timedelta(minutes=1))
    capability = FakeCapability(
        eligible={ready.id: "acct_ready", broken.id: "acct_broken", late.id: "acct_late"},
        failing={broken.id},
    )

    result = retry_pending(capability=capability)

    assert result == {"expired_count": 1, "retried_count": 2, "succeeded": 1, "failed": 1}
    ready_claim.refresh_from_db()
    waiting_claim.refresh_from_db()
    broken_claim.refresh_from_db()
    late_claim.refresh_from_db()
    assert ready_claim.status == PayoutRecord.Status.COMPLETED
    assert ready_claim.transfer_id == "tr_1"
    assert capability.transfers[0]["idempotency_key"] == f"rp-payout-{ready_claim.id}"
    assert waiting_claim.status == PayoutRecord.Status.REQUIRES_STRIPE_SETUP
    assert broken_claim.status == PayoutRecord.Status.FAILED
    assert late_claim.status == PayoutRecord.Status.EXPIRED
    assert get_payout_config().total_pool == 9
    assert UserContribution.objects.get(user=ready).win_count == 1


@pytest.mark.django_db
def test_retry_pending_is_safe_to_repeat():
    ready = _contributor("ready", 0.5)
    _pool(10)
    _claim(ready, expires_in=timedelta(days=1))
    capability = FakeCapability(eligible={ready.id: "acct_ready"})

    first = retry_pending(capability=capability)
    second = retry_pending(capability=capability)

    assert first["succeeded"] == 1
    assert second == {"expired_count": 0, "retried_count": 0, "succeeded": 0, "failed": 0}
    assert len(capability.transfers) == 1
    assert get_payout_config().total_pool == 9


@pytest.mark.django_db
def test_retry_pending_leaves_claims_when_pool_is_empty():
    ready = _contributor("ready", 0.5)
    _pool(0)
    claim = _claim(ready, expires_in=timedelta(days=1))

    result = retry_pending(capability=FakeCapability(eligible={ready.id: "acct_ready"}))

    claim.refresh_from_db()
    assert result["retried_count"] == 0
    assert claim.status == PayoutRecord.Status.REQUIRES_STRIPE_SETUP


class TimingOutCapability(FakeCapability):
    def __init__(self, eligible: Dict[int, str], timing_out: set[int]) -> None:
        super().__init__(eligible=eligible)
        self.timing_out = timing_out

    def create_transfer(self, destination_account, amount_units, metadata, idempotency_key=None) -> str:
        if int(metadata["user_id"]) in self.timing_out:
            raise TimeoutError("transfer call timed out")
        return super().create_transfer(destination_account, amount_units, metadata, idempotency_key)


@pytest.mark.django_db
def test_execute_treats_unexpected_transfer_error_as_failed_unit():
    paid = _contributor("paid", 0.5)
    slow = _contributor("slow", 0.5)
    _pool(10)
    capability = TimingOutCapability(
        eligible={paid.id: "acct_paid", slow.id: "acct_slow"},
        timing_out={slow.id},
    )

    batch_id = execute(3, rng=FixedRandom(0.1, 0.9, 0.9), capability=capability)

    records = PayoutRecord.objects.filter(batch_id=batch_id)
    assert records.count() == 3
    assert records.filter(status=PayoutRecord.Status.COMPLETED, user=paid).count() == 1
    failed = records.filter(status=PayoutRecord.Status.FAILED, user=slow)
    assert failed.count() == 2
    assert all("TimeoutError" in record.transfer_error for record in failed)
    assert get_payout_config().total_pool == 9


@pytest.mark.django_db
def test_retry_pending_treats_unexpected_transfer_error_as_failure():
    slow = _contributor("slow", 0.5)
    ready = _contributor("ready", 0.5)
    _pool(5)
    slow_claim = _claim(slow, expires_in=timedelta(days=1))
    ready_claim = _claim(ready, expires_in=timedelta(days=1))
    capability = TimingOutCapability(
        eligible={slow.id: "acct_slow", ready.id: "acct_ready"},
        timing_out={slow.id},
    )

    result = retry_pending(capability=capability)

    slow_claim.refresh_from_db()
    ready_claim.refresh_from_db()
    assert result == {"expired_count": 0, "retried_count": 2, "succeeded": 1, "failed": 1}
    assert slow_claim.status == PayoutRecord.Status.FAILED
    assert slow_claim.transfer_error.startswith("TimeoutError")
    assert ready_claim.status == PayoutRecord.Status.COMPLETED
    assert get_payout_config().total_pool == 4
