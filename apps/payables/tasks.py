from __future__ import annotations

import logging

from celery import shared_task

from apps.payables.services.executor import retry_pending

logger = logging.getLogger(__name__)


@shared_task
def retry_pending_payouts_task() -> dict:
    try:
        return retry_pending()
    except Exception as exc:  # pragma: no cover - logged for the beat scheduler
        logger.warning("payables.retry.task_failed error=%s", exc, exc_info=True)
        return {}
