"""
Gauntlet challenge lifecycle.

    pending -> active -> in_progress -> completed
    pending -> cancelled

Stakes are escrowed out of the wagered category on create/join and the
whole pot is paid to the winning side on resolve or abandonment. Every status
change is a single conditional UPDATE on the previous status, so concurrent
callers can apply a transition once. ``start`` and ``resolve`` treat a lost
race as success; ``join`` and ``cancel`` reject it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Iterable

from django.conf import settings
from django.utils import timezone

from apps.contributions.models import CATEGORY_FIELDS, OTHER_SUB_CATEGORIES, ContributionCategory, PointTransfer
from apps.contributions.services.ledger import decrement, increment, refresh_weighted_total
from apps.core.errors import (
    GracePeriodActive,
    InsufficientBalance,
    LedgerValidationError,
    NotAParticipant,
    StateConflict,
)
from apps.core.unit_of_work import UnitOfWork
from apps.gauntlet.models import GauntletChallenge, Team
from apps.users.models import User

logger = logging.getLogger(__name__)

Status = GauntletChallenge.Status


@dataclass(frozen=True)
class SettlementResult:
    challenge: GauntletChallenge
    applied: bool
    message: str = ""


def _grace_period() -> timedelta:
    return timedelta(minutes=int(getattr(settings, "GAUNTLET_ABANDON_GRACE_MINUTES", 60)))


def _positive_wager(value: Any, field: str) -> int:
    try:
        wager = int(value)
    except (TypeError, ValueError):
        raise LedgerValidationError(f"{field} must be a whole number.", code="invalid_wager") from None
    if wager != value or wager < 1:
        raise LedgerValidationError(f"{field} must be a positive whole number.", code="invalid_wager")
    return wager


def _load(challenge_id) -> GauntletChallenge:
    challenge = (
        GauntletChallenge.objects.select_related("challenger", "opponent").filter(pk=challenge_id).first()
    )
    if challenge is None:
        raise LedgerValidationError("Challenge not found.", code="not_found")
    return challenge


def _require_participant(challenge: GauntletChallenge, caller: User) -> None:
    if caller.pk not in challenge.participant_ids():
        raise NotAParticipant()


def _refresh_totals(category: str, users: Iterable[User]) -> None:
    # Only sub-categories feed total_points; wagers drawn from the other
    # buckets must not rewrite it.
    if category not in OTHER_SUB_CATEGORIES:
        return
    for user in users:
        refresh_weighted_total(user)


def _escrow(uow: UnitOfWork, user: User, category: str, amount: int) -> None:
    if not decrement(user=user, category=category, amount=amount, weighted_total=False):
        raise InsufficientBalance("Insufficient points in the selected category for this wager.")

    def _refund() -> None:
        increment(user=user, category=category, amount=amount, weighted_total=False)
        _refresh_totals(category, [user])

    uow.add_compensation(_refund)
    _refresh_totals(category, [user])


def list_open_challenges(limit: int = 100) -> list[GauntletChallenge]:
    return list(GauntletChallenge.objects.filter(status=Status.PENDING).order_by("-created_at")[:limit])


def get_challenge(challenge_id) -> GauntletChallenge:
    return _load(challenge_id)


def create(
    *,
    challenger: User,
    game_id: str,
    wager,
    opponent_wager,
    team: str,
    setup: Any,
    category: str = ContributionCategory.TOTAL,
    locked_settings: list[str] | None = None,
) -> GauntletChallenge:
    if not (game_id or "").strip():
        raise LedgerValidationError("game_id is required.", code="missing_field")
    if setup is None:
        raise LedgerValidationError("setup is required.", code="missing_field")
    if team not in Team.values:
        raise LedgerValidationError("team must be 'A' or 'B'.", code="invalid_team")
    if category not in CATEGORY_FIELDS:
        raise LedgerValidationError(f"Unknown or unsupported category: {category}", code="unknown_category")
    stake = _positive_wager(wager, "wager")
    quote = _positive_wager(opponent_wager, "opponent_wager")

    with UnitOfWork(label="gauntlet.create") as uow:
        _escrow(uow, challenger, category, stake)
        challenge = GauntletChallenge.objects.create(
            game_id=game_id.strip(),
            status=Status.PENDING,
            challenger=challenger,
            challenger_username=challenger.handle,
            challenger_team=team,
            challenger_wager=stake,
            challenger_setup=setup,
            challenger_has_setup=True,
            opponent_wager=quote,
            wager_category=category,
            locked_settings=list(locked_settings or []),
        )

    logger.info(
        "gauntlet.create challenge_id=%s user_id=%s category=%s wager=%s",
        challenge.pk,
        challenger.pk,
        category,
        stake,
    )
    return challenge


def join(challenge_id, joiner: User, setup: Any = None) -> GauntletChallenge:
    challenge = _load(challenge_id)
    if joiner.pk == challenge.challenger_id:
        raise LedgerValidationError("You cannot join your own challenge.", code="self_join")
    if challenge.status != Status.PENDING or challenge.opponent_id is not None:
        raise StateConflict("Challenge is no longer open.", current_status=challenge.status)

    with UnitOfWork(label="gauntlet.join") as uow:
        _escrow(uow, joiner, challenge.wager_category, challenge.opponent_wager)
        rows = GauntletChallenge.objects.filter(pk=challenge.pk, status=Status.PENDING, opponent__isnull=True).update(
            opponent=joiner,
            opponent_username=joiner.handle,
            opponent_team=Team.opposite(challenge.challenger_team),
            opponent_setup=setup,
            opponent_has_setup=bool(setup),
            status=Status.ACTIVE,
            updated_at=timezone.now(),
        )
        if not rows:
            current = GauntletChallenge.objects.filter(pk=challenge.pk).values_list("status", flat=True).first()
            raise StateConflict("Challenge is no longer open.", current_status=current)

    logger.info("gauntlet.join challenge_id=%s user_id=%s", challenge.pk, joiner.pk)
    return _load(challenge.pk)


def start(challenge_id, caller: User) -> SettlementResult:
    challenge = _load(challenge_id)
    _require_participant(challenge, caller)
    if challenge.status in (Status.IN_PROGRESS, Status.COMPLETED):
        return SettlementResult(challenge=challenge, applied=False, message="Challenge already started.")
    if challenge.status != Status.ACTIVE:
        raise StateConflict("Challenge is not ready to start.", current_status=challenge.status)

    rows = GauntletChallenge.objects.filter(pk=challenge.pk, status=Status.ACTIVE).update(
        status=Status.IN_PROGRESS,
        started_by=caller,
        started_at=timezone.now(),
        updated_at=timezone.now(),
    )
    challenge = _load(challenge.pk)
    if not rows:
        if challenge.status in (Status.IN_PROGRESS, Status.COMPLETED):
            return SettlementResult(challenge=challenge, applied=False, message="Challenge already started.")
        raise StateConflict("Challenge is not ready to start.", current_status=challenge.status)

    logger.info("gauntlet.start challenge_id=%s user_id=%s", challenge.pk, caller.pk)
    return SettlementResult(challenge=challenge, applied=True, message="Challenge started.")


def _settle(
    challenge: GauntletChallenge,
    winner_team: str,
    context_type: str,
    label: str,
) -> SettlementResult:
    winner = challenge.challenger if winner_team == challenge.challenger_team else challenge.opponent
    loser = challenge.opponent if winner is challenge.challenger else challenge.challenger
    if winner is None or loser is None:
        raise StateConflict("Challenge has no opponent to settle against.", current_status=challenge.status)
    loser_stake = challenge.opponent_wager if winner is challenge.challenger else challenge.challenger_wager
    category = challenge.wager_category
    pot = challenge.pot

    with UnitOfWork(label=label) as uow:
        rows = GauntletChallenge.objects.filter(pk=challenge.pk, status=Status.IN_PROGRESS).update(
            status=Status.COMPLETED,
            winner=winner_team,
            completed_at=timezone.now(),
            updated_at=timezone.now(),
        )
        if not rows:
            return SettlementResult(challenge=_load(challenge.pk), applied=False, message="Challenge already resolved.")
        uow.add_compensation(
            lambda: GauntletChallenge.objects.filter(pk=challenge.pk, status=Status.COMPLETED).update(
                status=Status.IN_PROGRESS, winner="", completed_at=None
            )
        )

        increment(user=winner, category=category, amount=pot, username=winner.handle, weighted_total=False)
        uow.add_compensation(lambda: decrement(user=winner, category=category, amount=pot, weighted_total=False))

        PointTransfer.objects.create(
            sender=loser,
            sender_username=loser.handle,
            recipient=winner,
            recipient_username=winner.handle,
            amount=loser_stake,
            point_type=category,
            memo=f"Gauntlet {challenge.game_id} winnings",
            context={"type": context_type, "challenge_id": str(challenge.pk), "pot": pot},
        )
        _refresh_totals(category, [winner, loser])

    logger.info(
        "%s challenge_id=%s winner_id=%s category=%s pot=%s",
        label,
        challenge.pk,
        winner.pk,
        category,
        pot,
    )
    return SettlementResult(challenge=_load(challenge.pk), applied=True, message="Challenge resolved.")


def resolve(challenge_id, winner_team: str, caller: User | None = None) -> SettlementResult:
    if winner_team not in Team.values:
        raise LedgerValidationError("winner must be 'A' or 'B'.", code="invalid_team")
    challenge = _load(challenge_id)
    if caller is not None:
        _require_participant(challenge, caller)
    if challenge.status == Status.COMPLETED:
        return SettlementResult(challenge=challenge, applied=False, message="Challenge already resolved.")
    if challenge.status != Status.IN_PROGRESS:
        raise StateConflict("Challenge is not in progress.", current_status=challenge.status)
    return _settle(challenge, winner_team, PointTransfer.ContextType.GAUNTLET_SETTLEMENT, "gauntlet.resolve")


def cancel(challenge_id, caller: User) -> SettlementResult:
    challenge = _load(challenge_id)
    if caller.pk != challenge.challenger_id:
        raise NotAParticipant("Only the challenger can cancel this challenge.")
    if challenge.status != Status.PENDING:
        raise StateConflict("Only pending challenges can be cancelled.", current_status=challenge.status)

    category = challenge.wager_category
    with UnitOfWork(label="gauntlet.cancel") as uow:
        rows = GauntletChallenge.objects.filter(pk=challenge.pk, status=Status.PENDING, opponent__isnull=True).update(
            status=Status.CANCELLED,
            updated_at=timezone.now(),
        )
        if not rows:
            current = GauntletChallenge.objects.filter(pk=challenge.pk).values_list("status", flat=True).first()
            raise StateConflict("Only pending challenges can be cancelled.", current_status=current)
        uow.add_compensation(
            lambda: GauntletChallenge.objects.filter(pk=challenge.pk, status=Status.CANCELLED).update(
                status=Status.PENDING
            )
        )
        increment(user=caller, category=category, amount=challenge.challenger_wager, weighted_total=False)
        _refresh_totals(category, [caller])

    logger.info("gauntlet.cancel challenge_id=%s user_id=%s refund=%s", challenge.pk, caller.pk, challenge.challenger_wager)
    return SettlementResult(challenge=_load(challenge.pk), applied=True, message="Challenge cancelled and wager refunded.")


def report_abandonment(challenge_id, caller: User) -> SettlementResult:
    challenge = _load(challenge_id)
    _require_participant(challenge, caller)
    if challenge.status == Status.COMPLETED:
        return SettlementResult(challenge=challenge, applied=False, message="Challenge already resolved.")
    if challenge.status != Status.IN_PROGRESS:
        raise StateConflict("Challenge is not in progress.", current_status=challenge.status)
    if caller.pk == challenge.started_by_id:
        raise NotAParticipant("The player who started the game cannot report it abandoned.")
    if challenge.started_at is None or timezone.now() < challenge.started_at + _grace_period():
        raise GracePeriodActive("The opponent still has time to finish the game.")

    winner_team = challenge.challenger_team if caller.pk == challenge.challenger_id else challenge.opponent_team
    return _settle(challenge, winner_team, PointTransfer.ContextType.GAUNTLET_FORFEITURE, "gauntlet.abandon")
