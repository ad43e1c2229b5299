from django.core.management.base import BaseCommand
from orders.sweeper import expire_stale_orders


class Command(BaseCommand):
    help = "Cancel pending orders older than ORDER_TTL_HOURS with their checkout sessions and invoices"

    def handle(self, *args, **options):
        count = expire_stale_orders()
        self.stdout.write(self.style.SUCCESS(f"Expired {count} pending orders."))
