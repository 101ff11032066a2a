from __future__ import annotations

import random

from django.core.management.base import BaseCommand, CommandError

from apps.core.errors import LedgerValidationError
from apps.payables.services.executor import simulate


class Command(BaseCommand):
    help = "Dry-run a payout draw and print how many units each contributor would win."

    def add_arguments(self, parser) -> None:
        parser.add_argument("amount", type=int, help="Number of units to draw.")
        parser.add_argument("--seed", type=int, default=None, help="Seed the draw for a reproducible forecast.")

    def handle(self, *args, **options):
        rng = random.Random(options["seed"])
        try:
            results = simulate(options["amount"], rng=rng)
        except LedgerValidationError as exc:
            raise CommandError(exc.detail) from exc

        if not results:
            self.stdout.write("No winners (no contributor has a positive win probability).")
            return
        for row in results:
            self.stdout.write(f" - user={row['user_id']} username={row['username']} amount_won={row['amount_won']}")
