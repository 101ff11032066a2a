from __future__ import annotations

import logging
import math
from typing import Iterable

from django.db import transaction
from django.db.models import F, Value
from django.db.models.functions import Greatest
from django.utils import timezone

from apps.contributions.models import (
    CATEGORY_FIELDS,
    CONTRIBUTION_POINTS,
    OTHER_SUB_CATEGORIES,
    TRANSFERABLE_CATEGORIES,
    PointTransfer,
    UserContribution,
)
from apps.contributions.services.weights import OtherWeights, get_weighted_points
from apps.core.errors import InsufficientBalance, LedgerValidationError
from apps.core.unit_of_work import UnitOfWork
from apps.users.models import User

logger = logging.getLogger(__name__)


def _field_for(category: str, allowed: Iterable[str] | None = None) -> str:
    if category not in CATEGORY_FIELDS or (allowed is not None and category not in allowed):
        raise LedgerValidationError(f"Unknown or unsupported category: {category}", code="unknown_category")
    return CATEGORY_FIELDS[category]


def _validate_amount(amount) -> float:
    try:
        value = float(amount)
    except (TypeError, ValueError):
        raise LedgerValidationError("Amount must be a number.", code="invalid_amount") from None
    if not math.isfinite(value) or value <= 0:
        raise LedgerValidationError("Amount must be positive.", code="invalid_amount")
    return value


def _other_weights() -> OtherWeights:
    from apps.payables.services.config import other_weights

    return other_weights()


def schedule_probability_refresh() -> None:
    """Queue a probability recompute once the surrounding transaction commits."""

    def _enqueue() -> None:
        from apps.contributions.tasks import recompute_probabilities_task

        try:
            recompute_probabilities_task.delay()
        except Exception as exc:
            logger.warning("contributions.recompute.enqueue_failed error=%s", exc)

    transaction.on_commit(_enqueue)


def get_or_create_contribution(user: User, username: str | None = None) -> UserContribution:
    contribution, _ = UserContribution.objects.get_or_create(
        user=user,
        defaults={"username": username or user.handle},
    )
    return contribution


def get_balance(user: User, category: str) -> float:
    field = _field_for(category)
    value = UserContribution.objects.filter(user=user).values_list(field, flat=True).first()
    return float(value or 0.0)


def increment(
    *,
    user: User,
    category: str,
    amount,
    username: str | None = None,
    weighted_total: bool = True,
) -> None:
    """
    Add points to one category with a single atomic UPDATE.

    Sub-categories of the "other" bucket also raise total_points by the
    weighted delta in the same statement unless ``weighted_total`` is False.
    """
    field = _field_for(category)
    value = _validate_amount(amount)
    get_or_create_contribution(user, username)

    updates = {field: F(field) + value, "updated_at": timezone.now()}
    if username:
        updates["username"] = username
    if weighted_total and category in OTHER_SUB_CATEGORIES:
        weight = _other_weights().weight_for(category)
        if weight > 0:
            updates["total_points"] = F("total_points") + value * weight

    UserContribution.objects.filter(user=user).update(**updates)
    logger.debug("contributions.increment user_id=%s category=%s amount=%s", user.pk, category, value)
    schedule_probability_refresh()


def decrement(*, user: User, category: str, amount, weighted_total: bool = True) -> bool:
    """
    Remove points from one category if the balance covers it.

    Returns False without touching the row when the balance is short.
    """
    field = _field_for(category)
    value = _validate_amount(amount)

    updates = {field: F(field) - value, "updated_at": timezone.now()}
    if weighted_total and category in OTHER_SUB_CATEGORIES:
        weight = _other_weights().weight_for(category)
        if weight > 0:
            updates["total_points"] = Greatest(F("total_points") - value * weight, Value(0.0))

    rows = UserContribution.objects.filter(user=user, **{f"{field}__gte": value}).update(**updates)
    if not rows:
        logger.info("contributions.decrement.insufficient user_id=%s category=%s amount=%s", user.pk, category, value)
        return False
    schedule_probability_refresh()
    return True


def refresh_weighted_total(user: User, other_weights: OtherWeights | None = None) -> float:
    contribution = UserContribution.objects.filter(user=user).first()
    if contribution is None:
        return 0.0
    total = get_weighted_points(contribution.metrics, other_weights or _other_weights())
    UserContribution.objects.filter(pk=contribution.pk).update(total_points=total, updated_at=timezone.now())
    return total


def refresh_all_weighted_totals(other_weights: OtherWeights | None = None) -> int:
    """Rebuild every stored total_points from the current sub-category weights."""
    weights = other_weights or _other_weights()
    refreshed = 0
    for contribution in UserContribution.objects.select_related("user").iterator():
        refresh_weighted_total(contribution.user, weights)
        refreshed += 1
    return refreshed


def record_contribution(user: User, contribution_type: str, count: int = 1) -> float:
    """Credit a collaborator-reported contribution event; returns the points awarded."""
    if contribution_type not in CONTRIBUTION_POINTS:
        raise LedgerValidationError(f"Unknown contribution type: {contribution_type}", code="unknown_contribution_type")
    if int(count) < 1:
        raise LedgerValidationError("Count must be at least 1.", code="invalid_amount")
    category, points = CONTRIBUTION_POINTS[contribution_type]
    awarded = points * int(count)
    increment(user=user, category=category, amount=awarded, username=user.handle)
    return float(awarded)


def transfer_points(
    *,
    sender: User,
    recipient_username: str,
    category: str,
    amount,
    memo: str = "",
) -> PointTransfer:
    _field_for(category, allowed=TRANSFERABLE_CATEGORIES)
    value = _validate_amount(amount)

    recipient = User.objects.filter(handle__iexact=(recipient_username or "").strip()).first()
    if recipient is None:
        raise LedgerValidationError("Recipient user not found.", code="recipient_not_found")
    if recipient.pk == sender.pk:
        raise LedgerValidationError("You cannot transfer points to yourself.", code="self_transfer")

    with UnitOfWork(label="contributions.transfer") as uow:
        if not decrement(user=sender, category=category, amount=value):
            raise InsufficientBalance("Insufficient points for this transfer.")
        uow.add_compensation(lambda: increment(user=sender, category=category, amount=value))
        increment(user=recipient, category=category, amount=value, username=recipient.handle)
        uow.add_compensation(lambda: decrement(user=recipient, category=category, amount=value))
        transfer = PointTransfer.objects.create(
            sender=sender,
            sender_username=sender.handle,
            recipient=recipient,
            recipient_username=recipient.handle,
            amount=value,
            point_type=category,
            memo=(memo or "")[:255],
            context={"type": PointTransfer.ContextType.MANUAL_TRANSFER},
        )

    logger.info(
        "contributions.transfer sender_id=%s recipient_id=%s category=%s amount=%s",
        sender.pk,
        recipient.pk,
        category,
        value,
    )
    return transfer
