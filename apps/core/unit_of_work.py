"""
Multi-row write boundary for ledger operations.

``UnitOfWork`` wraps a block in ``transaction.atomic()`` when the database
supports transactions and ``LEDGER_USE_TRANSACTIONS`` is enabled. Otherwise
the block runs as an ordered sequence of single-row atomic statements and
callers register compensations that are replayed in reverse order if the
block raises.

The non-transactional path is best effort: a crash between two statements
(process kill, lost connection) leaves partially applied work and the
compensations never run. Each step is a single-row atomic update, so no
balance ever goes negative, but an escrowed stake can be left without its
challenge row until an operator reconciles it.
"""

from __future__ import annotations

import logging
from contextlib import ExitStack
from typing import Callable, List

from django.conf import settings
from django.db import DEFAULT_DB_ALIAS, connections, transaction

logger = logging.getLogger(__name__)


def transactions_available(using: str = DEFAULT_DB_ALIAS) -> bool:
    if not getattr(settings, "LEDGER_USE_TRANSACTIONS", True):
        return False
    return bool(connections[using].features.supports_transactions)


class UnitOfWork:
    def __init__(self, using: str = DEFAULT_DB_ALIAS, label: str = "") -> None:
        self.using = using
        self.label = label
        self.atomic = transactions_available(using)
        self._compensations: List[Callable[[], object]] = []
        self._stack: ExitStack | None = None

    def __enter__(self) -> "UnitOfWork":
        self._stack = ExitStack()
        if self.atomic:
            self._stack.enter_context(transaction.atomic(using=self.using))
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        assert self._stack is not None
        try:
            if exc_type is not None and not self.atomic:
                self._compensate()
        finally:
            self._stack.__exit__(exc_type, exc, tb)
            self._stack = None
            self._compensations = []
        return False

    def add_compensation(self, undo: Callable[[], object]) -> None:
        """Register an undo step. Only used when no transaction is open."""
        if not self.atomic:
            self._compensations.append(undo)

    def on_commit(self, callback: Callable[[], object]) -> None:
        transaction.on_commit(callback, using=self.using)

    def _compensate(self) -> None:
        for undo in reversed(self._compensations):
            try:
                undo()
            except Exception:
                logger.exception("unit_of_work.compensation_failed label=%s", self.label)
