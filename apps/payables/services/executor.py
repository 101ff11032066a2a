"""
Random Payables draws.

Every unit of a payout is drawn independently by roulette-wheel selection
over the contributors' ``win_probability``. Eligible winners are paid one
unit through the payment capability; winners without a usable payout account
get a ``requires_stripe_setup`` claim that ``retry_pending`` settles or
expires later. A failure settling one unit is recorded on its PayoutRecord
and the batch carries on.
"""

from __future__ import annotations

import logging
import random
import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import Dict, List, Sequence

from django.conf import settings
from django.db.models import F, Sum
from django.utils import timezone

from apps.contributions.models import UserContribution
from apps.core.errors import LedgerValidationError
from apps.core.unit_of_work import UnitOfWork
from apps.payables.models import PayoutConfig, PayoutRecord
from apps.payables.services.config import get_payout_config
from apps.payments.capability import PaymentCapability, PayoutTransferError, get_payment_capability
from libs.idgen import generate_id

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Candidate:
    user_id: int
    username: str
    probability: float


def weighted_random_selection(weights: Sequence[float], rng: random.Random | None = None) -> int:
    """Return the drawn index, or -1 when there is nothing to draw from."""
    total = sum(max(weight, 0.0) for weight in weights)
    if total <= 0:
        return -1
    target = (rng or random).random() * total
    cumulative = 0.0
    for index, weight in enumerate(weights):
        cumulative += max(weight, 0.0)
        if target < cumulative:
            return index
    # Float rounding can leave target == total.
    return len(weights) - 1


def _claim_window() -> timedelta:
    return timedelta(days=int(getattr(settings, "PAYABLES_CLAIM_WINDOW_DAYS", 6)))


def _validate_payout_amount(amount) -> int:
    try:
        value = int(amount)
    except (TypeError, ValueError):
        raise LedgerValidationError("Amount must be a whole number.", code="invalid_amount") from None
    if value != amount or value < 1:
        raise LedgerValidationError("Amount must be a whole number of at least 1.", code="invalid_amount")
    max_amount = int(getattr(settings, "PAYABLES_MAX_PAYOUT_AMOUNT", 10_000))
    if value > max_amount:
        raise LedgerValidationError(f"Amount cannot exceed {max_amount}.", code="amount_too_large")
    return value


def _load_candidates() -> List[Candidate]:
    rows = (
        UserContribution.objects.filter(win_probability__gt=0)
        .order_by("id")
        .values_list("user_id", "username", "win_probability")
    )
    return [Candidate(user_id=user_id, username=username, probability=prob) for user_id, username, prob in rows]


def _draw(candidates: Sequence[Candidate], amount: int, rng) -> List[Candidate | None]:
    weights = [candidate.probability for candidate in candidates]
    winners: List[Candidate | None] = []
    for _ in range(amount):
        index = weighted_random_selection(weights, rng)
        winners.append(candidates[index] if index >= 0 else None)
    return winners


def simulate(amount, rng: random.Random | None = None) -> List[dict]:
    """Dry run: aggregate how many units each contributor would win."""
    value = _validate_payout_amount(amount)
    counts: Dict[int, dict] = {}
    for winner in _draw(_load_candidates(), value, rng or random.Random()):
        if winner is None:
            continue
        entry = counts.setdefault(winner.user_id, {"user_id": winner.user_id, "username": winner.username, "amount_won": 0})
        entry["amount_won"] += 1
    return sorted(counts.values(), key=lambda row: (-row["amount_won"], row["username"]))


def _reserve_pool_unit() -> bool:
    return bool(PayoutConfig.objects.filter(singleton_key=1, total_pool__gte=1).update(total_pool=F("total_pool") - 1))


def _release_pool_unit() -> None:
    PayoutConfig.objects.filter(singleton_key=1).update(total_pool=F("total_pool") + 1)


def _error_text(exc: Exception) -> str:
    if isinstance(exc, PayoutTransferError):
        return str(exc)
    return f"{type(exc).__name__}: {exc}"


def _transfer_unit(
    *,
    capability: PaymentCapability,
    record_id: int,
    batch_id: uuid.UUID,
    user_id: int,
    destination: str,
) -> str:
    return capability.create_transfer(
        destination_account=destination,
        amount_units=1,
        metadata={"batch_id": str(batch_id), "payout_record_id": record_id, "user_id": user_id},
        idempotency_key=f"rp-payout-{record_id}",
    )


def _settle_unit(batch_id: uuid.UUID, winner: Candidate, capability: PaymentCapability) -> str | None:
    """Settle one drawn unit; returns the record status or None when the pool ran dry."""
    eligibility = capability.eligibility(winner.user_id)
    base = {
        "batch_id": batch_id,
        "user_id": winner.user_id,
        "username": winner.username,
        "amount": 1,
        "probability": winner.probability,
    }
    if not eligibility.eligible or not eligibility.destination:
        PayoutRecord.objects.create(
            status=PayoutRecord.Status.REQUIRES_STRIPE_SETUP,
            expires_at=timezone.now() + _claim_window(),
            **base,
        )
        logger.info("payables.execute.claim_created batch_id=%s user_id=%s", batch_id, winner.user_id)
        return PayoutRecord.Status.REQUIRES_STRIPE_SETUP

    if not _reserve_pool_unit():
        logger.warning("payables.execute.pool_exhausted batch_id=%s", batch_id)
        return None

    record_id = generate_id()
    try:
        transfer_id = _transfer_unit(
            capability=capability,
            record_id=record_id,
            batch_id=batch_id,
            user_id=winner.user_id,
            destination=eligibility.destination,
        )
    except Exception as exc:
        # Timeouts and unexpected client errors count as a failed unit.
        _release_pool_unit()
        PayoutRecord.objects.create(
            id=record_id, status=PayoutRecord.Status.FAILED, transfer_error=_error_text(exc), **base
        )
        logger.warning(
            "payables.execute.transfer_failed batch_id=%s user_id=%s error=%s",
            batch_id,
            winner.user_id,
            exc,
            exc_info=not isinstance(exc, PayoutTransferError),
        )
        return PayoutRecord.Status.FAILED

    with UnitOfWork(label="payables.execute.completed"):
        PayoutRecord.objects.create(id=record_id, status=PayoutRecord.Status.COMPLETED, transfer_id=transfer_id, **base)
        UserContribution.objects.filter(user_id=winner.user_id).update(win_count=F("win_count") + 1)
    return PayoutRecord.Status.COMPLETED


def execute(
    amount,
    rng: random.Random | None = None,
    capability: PaymentCapability | None = None,
) -> uuid.UUID:
    value = _validate_payout_amount(amount)
    config = get_payout_config()
    if value > config.total_pool:
        raise LedgerValidationError(
            f"Amount exceeds the remaining pool of {config.total_pool}.", code="pool_exceeded"
        )

    capability = capability or get_payment_capability()
    batch_id = uuid.uuid4()
    tally: Dict[str, int] = {}
    for winner in _draw(_load_candidates(), value, rng or random.SystemRandom()):
        if winner is None:
            tally["no_winner"] = tally.get("no_winner", 0) + 1
            continue
        outcome = _settle_unit(batch_id, winner, capability)
        if outcome is None:
            break
        tally[outcome] = tally.get(outcome, 0) + 1

    logger.info(
        "payables.execute.done batch_id=%s amount=%s completed=%s failed=%s pending=%s no_winner=%s",
        batch_id,
        value,
        tally.get(PayoutRecord.Status.COMPLETED, 0),
        tally.get(PayoutRecord.Status.FAILED, 0),
        tally.get(PayoutRecord.Status.REQUIRES_STRIPE_SETUP, 0),
        tally.get("no_winner", 0),
    )
    return batch_id


def retry_pending(capability: PaymentCapability | None = None) -> dict:
    """
    Expire overdue claims, then try to pay the live ones.

    Safe to run repeatedly or concurrently: a claim is only completed by a
    conditional update keyed on ``requires_stripe_setup`` and the transfer
    idempotency key is derived from the record id.
    """
    capability = capability or get_payment_capability()
    now = timezone.now()
    expired_count = PayoutRecord.objects.filter(
        status=PayoutRecord.Status.REQUIRES_STRIPE_SETUP,
        expires_at__lte=now,
    ).update(status=PayoutRecord.Status.EXPIRED, updated_at=now)

    result = {"expired_count": expired_count, "retried_count": 0, "succeeded": 0, "failed": 0}
    pending = list(
        PayoutRecord.objects.filter(status=PayoutRecord.Status.REQUIRES_STRIPE_SETUP, expires_at__gt=now).order_by(
            "created_at"
        )
    )
    for record in pending:
        eligibility = capability.eligibility(record.user_id)
        if not eligibility.eligible or not eligibility.destination:
            continue
        if not _reserve_pool_unit():
            logger.warning("payables.retry.pool_exhausted remaining=%s", len(pending))
            break

        result["retried_count"] += 1
        try:
            transfer_id = _transfer_unit(
                capability=capability,
                record_id=record.id,
                batch_id=record.batch_id,
                user_id=record.user_id,
                destination=eligibility.destination,
            )
        except Exception as exc:
            _release_pool_unit()
            PayoutRecord.objects.filter(pk=record.pk, status=PayoutRecord.Status.REQUIRES_STRIPE_SETUP).update(
                status=PayoutRecord.Status.FAILED,
                transfer_error=_error_text(exc),
                updated_at=timezone.now(),
            )
            result["failed"] += 1
            logger.warning(
                "payables.retry.transfer_failed record_id=%s user_id=%s error=%s",
                record.pk,
                record.user_id,
                exc,
                exc_info=not isinstance(exc, PayoutTransferError),
            )
            continue

        with UnitOfWork(label="payables.retry.completed"):
            applied = PayoutRecord.objects.filter(
                pk=record.pk, status=PayoutRecord.Status.REQUIRES_STRIPE_SETUP
            ).update(status=PayoutRecord.Status.COMPLETED, transfer_id=transfer_id, updated_at=timezone.now())
            if applied:
                UserContribution.objects.filter(user_id=record.user_id).update(win_count=F("win_count") + 1)
        if applied:
            result["succeeded"] += 1
        else:
            # Another worker settled this claim; the idempotency key kept it to one transfer.
            _release_pool_unit()
            logger.info("payables.retry.already_settled record_id=%s", record.pk)

    logger.info(
        "payables.retry.done expired=%s retried=%s succeeded=%s failed=%s",
        result["expired_count"],
        result["retried_count"],
        result["succeeded"],
        result["failed"],
    )
    return result


def list_unclaimed(limit: int = 200) -> List[PayoutRecord]:
    return list(
        PayoutRecord.objects.filter(status=PayoutRecord.Status.REQUIRES_STRIPE_SETUP).order_by("expires_at")[:limit]
    )


def get_user_payout_history(user) -> dict:
    records = PayoutRecord.objects.filter(user=user)
    total_won = records.filter(status=PayoutRecord.Status.COMPLETED).aggregate(total=Sum("amount"))["total"] or 0
    return {"total_won": total_won, "payouts": list(records.order_by("-created_at")[:100])}


def get_stats() -> dict:
    config = get_payout_config()
    completed = PayoutRecord.objects.filter(status=PayoutRecord.Status.COMPLETED)
    top = (
        UserContribution.objects.order_by("-win_probability", "id")
        .values("user_id", "username", "win_probability", "win_count")[:10]
    )
    recent = completed.order_by("-created_at").values("batch_id", "user_id", "username", "amount", "created_at")[:10]
    return {
        "total_contributors": UserContribution.objects.count(),
        "total_paid": completed.aggregate(total=Sum("amount"))["total"] or 0,
        "total_pool": config.total_pool,
        "next_scheduled_run": config.next_scheduled_run,
        "top_contributors": list(top),
        "recent_payouts": list(recent),
    }
