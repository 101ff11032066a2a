from __future__ import annotations

import logging

from celery import shared_task

from apps.contributions.services.probability import recompute_all

logger = logging.getLogger(__name__)


@shared_task
def recompute_probabilities_task() -> int:
    try:
        return recompute_all()
    except Exception as exc:  # pragma: no cover - logged for the beat scheduler
        logger.warning("contributions.recompute.failed error=%s", exc, exc_info=True)
        return 0
