from __future__ import annotations

import logging
from typing import Any

from django.conf import settings
from django.core.exceptions import ValidationError

from apps.contributions.services.ledger import refresh_all_weighted_totals, schedule_probability_refresh
from apps.contributions.services.weights import OtherWeights, TopLevelWeights
from apps.core.errors import LedgerValidationError
from apps.payables.models import WEIGHT_FIELDS, PayoutConfig

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("total_pool", "batch_size", "next_scheduled_run", *WEIGHT_FIELDS)
OTHER_WEIGHT_FIELDS = ("game_publication_weight", "community_weight", "code_weight", "content_weight")


def _defaults() -> dict[str, Any]:
    return {
        "total_pool": int(getattr(settings, "PAYABLES_DEFAULT_POOL", 0)),
        "batch_size": int(getattr(settings, "PAYABLES_DEFAULT_BATCH_SIZE", 100)),
        **{
            field: float(value)
            for field, value in getattr(settings, "PAYABLES_DEFAULT_WEIGHTS", {}).items()
            if field in WEIGHT_FIELDS
        },
    }


def get_payout_config() -> PayoutConfig:
    config, created = PayoutConfig.objects.get_or_create(singleton_key=1, defaults=_defaults())
    if created:
        logger.info("payables.config.created total_pool=%s", config.total_pool)
    return config


def update_payout_config(**fields: Any) -> PayoutConfig:
    """
    Apply an admin edit to the singleton config.

    A change to any sub-category weight rebuilds every stored total_points;
    a change to any weight queues a probability recompute.
    """
    unknown = set(fields) - set(EDITABLE_FIELDS)
    if unknown:
        raise LedgerValidationError(f"Unknown config fields: {sorted(unknown)}", code="invalid_config")
    for field in WEIGHT_FIELDS:
        if field in fields and float(fields[field]) < 0:
            raise LedgerValidationError(f"{field} must be non-negative.", code="invalid_weight")
    for field in ("total_pool", "batch_size"):
        if field in fields and int(fields[field]) < 0:
            raise LedgerValidationError(f"{field} must be non-negative.", code="invalid_config")

    config = get_payout_config()
    changed = {
        field for field, value in fields.items() if field in WEIGHT_FIELDS and float(getattr(config, field)) != float(value)
    }
    for field, value in fields.items():
        setattr(config, field, value)
    try:
        config.full_clean()
    except ValidationError as exc:
        raise LedgerValidationError("; ".join(exc.messages), code="invalid_config") from exc
    config.save()
    logger.info("payables.config.updated fields=%s", ",".join(sorted(fields)))

    if changed & set(OTHER_WEIGHT_FIELDS):
        refreshed = refresh_all_weighted_totals(other_weights(config))
        logger.info("payables.config.totals_refreshed contributors=%s", refreshed)
    if changed:
        schedule_probability_refresh()
    return config


def top_level_weights(config: PayoutConfig | None = None) -> TopLevelWeights:
    config = config or get_payout_config()
    return TopLevelWeights(
        github=config.github_platform_weight,
        peer_review=config.peer_review_weight,
        other=config.other_contributions_weight,
    )


def other_weights(config: PayoutConfig | None = None) -> OtherWeights:
    config = config or get_payout_config()
    return OtherWeights(
        game_publication=config.game_publication_weight,
        community=config.community_weight,
        code=config.code_weight,
        content=config.content_weight,
    )
