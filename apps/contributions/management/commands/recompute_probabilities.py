from __future__ import annotations

from django.core.management.base import BaseCommand

from apps.contributions.services.ledger import refresh_all_weighted_totals
from apps.contributions.services.probability import recompute_all


class Command(BaseCommand):
    help = "Recompute win probabilities for every contributor."

    def add_arguments(self, parser) -> None:
        parser.add_argument(
            "--refresh-totals",
            action="store_true",
            help="Rebuild total_points from the other sub-categories before recomputing.",
        )

    def handle(self, *args, **options):
        if options["refresh_totals"]:
            refreshed = refresh_all_weighted_totals()
            self.stdout.write(self.style.NOTICE(f"Refreshed total_points for {refreshed} contributors."))

        updated = recompute_all()
        self.stdout.write(self.style.SUCCESS(f"Recomputed win probabilities for {updated} contributors."))
