from django.core.management.base import BaseCommand
from services.ride_management import sweep_timed_out_bookings


class Command(BaseCommand):
    help = "Cancel bookings still waiting for a driver past their timeout and notify passengers."

    def handle(self, *args, **options):
        result = sweep_timed_out_bookings()

        self.stdout.write(
            self.style.SUCCESS(
                f"Cancelled {result.processed} booking(s); sent {result.notifications} notification(s)."
            )
        )
