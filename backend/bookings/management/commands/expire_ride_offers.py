from django.core.management.base import BaseCommand
from services.offers import expire_stale_offers


class Command(BaseCommand):
    help = "Expire ride offers past their expiry time and hand their bookings back for reassignment."

    def handle(self, *args, **options):
        expired_count, released_count = expire_stale_offers()

        self.stdout.write(
            self.style.SUCCESS(
                f"Expired {expired_count} offer(s); released {released_count} booking(s) for reassignment."
            )
        )
