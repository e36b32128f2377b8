from django.core.cache import cache
from django.core.management.base import BaseCommand

from blood import services
from hospitals.models import Organization


class Command(BaseCommand):
    help = "Mark ACTIVE inventory lots whose expiration date has passed as EXPIRED."

    def add_arguments(self, parser):
        parser.add_argument("--organization", type=int, default=None, help="Only sweep this organization id.")

    def handle(self, *args, **options):
        # Prevent overlapping executions
        lock_key = "blood:expire_inventory_lots:lock"
        if not cache.add(lock_key, 1, timeout=55):
            self.stdout.write("Another expire_inventory_lots run is active. Exiting.")
            return

        try:
            org = None
            if options["organization"]:
                org = Organization.objects.filter(pk=options["organization"]).first()
                if org is None:
                    self.stderr.write(f"Organization {options['organization']} not found.")
                    return

            count = services.expire_inventory(organization=org)
            self.stdout.write(self.style.SUCCESS(f"Inventory lots expired: {count}"))
        finally:
            cache.delete(lock_key)
