from __future__ import annotations

from django.core.management.base import BaseCommand

from apps.payables.services.executor import retry_pending


class Command(BaseCommand):
    help = "Expire overdue payout claims and retry transfers for winners who finished payout setup."

    def handle(self, *args, **options):
        result = retry_pending()
        self.stdout.write(
            self.style.SUCCESS(
                f"Expired: {result['expired_count']}, retried: {result['retried_count']}, "
                f"succeeded: {result['succeeded']}, failed: {result['failed']}"
            )
        )
