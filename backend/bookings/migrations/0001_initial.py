import bookings.models
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('drivers', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Booking',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('booking_code', models.CharField(blank=True, max_length=32, null=True, unique=True)),
                ('passenger_name', models.CharField(blank=True, max_length=255)),
                ('passenger_phone', models.CharField(blank=True, max_length=20)),
                ('passenger_count', models.PositiveIntegerField(default=1)),
                ('originating_operator_code', models.CharField(blank=True, db_index=True, max_length=16)),
                ('preferred_operator_code', models.CharField(blank=True, max_length=16)),
                ('pickup_latitude', models.DecimalField(blank=True, decimal_places=6, max_digits=10, null=True)),
                ('pickup_longitude', models.DecimalField(blank=True, decimal_places=6, max_digits=10, null=True)),
                ('pickup_address', models.TextField(blank=True)),
                ('dropoff_latitude', models.DecimalField(blank=True, decimal_places=6, max_digits=10, null=True)),
                ('dropoff_longitude', models.DecimalField(blank=True, decimal_places=6, max_digits=10, null=True)),
                ('dropoff_address', models.TextField(blank=True)),
                ('stops', models.JSONField(blank=True, default=list)),
                ('fare_estimate', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ('distance_miles', models.DecimalField(blank=True, decimal_places=2, max_digits=8, null=True)),
                ('payment_method', models.CharField(choices=[('card', 'Card'), ('cash', 'Cash'), ('account', 'Account')], default='cash', max_length=10)),
                ('is_priority_pickup', models.BooleanField(default=False)),
                ('priority_fee_amount', models.DecimalField(blank=True, decimal_places=2, max_digits=8, null=True)),
                ('account_job_pin', models.CharField(blank=True, max_length=16)),
                ('driver_notes', models.TextField(blank=True)),
                ('wait_and_return', models.BooleanField(default=False)),
                ('status', models.CharField(choices=[('pending_assignment', 'Pending Assignment'), ('driver_assigned', 'Driver Assigned'), ('arrived_at_pickup', 'Arrived at Pickup'), ('in_progress', 'In Progress'), ('in_progress_wait_and_return', 'In Progress (Wait & Return)'), ('completed', 'Completed'), ('cancelled_no_driver', 'Cancelled - No Driver'), ('cancelled_by_passenger', 'Cancelled by Passenger'), ('cancelled_by_operator', 'Cancelled by Operator')], default='pending_assignment', max_length=32)),
                ('driver_name', models.CharField(blank=True, max_length=255)),
                ('driver_vehicle_details', models.CharField(blank=True, max_length=255)),
                ('dispatch_method', models.CharField(blank=True, choices=[('auto_system', 'Automatic'), ('manual_operator', 'Manual (Operator)')], max_length=20)),
                ('driver_current_latitude', models.DecimalField(blank=True, decimal_places=6, max_digits=10, null=True)),
                ('driver_current_longitude', models.DecimalField(blank=True, decimal_places=6, max_digits=10, null=True)),
                ('driver_location_updated_at', models.DateTimeField(blank=True, null=True)),
                ('driver_eta_minutes', models.PositiveIntegerField(blank=True, null=True)),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('timeout_at', models.DateTimeField(db_index=True, default=bookings.models.default_timeout_at)),
                ('accepted_at', models.DateTimeField(blank=True, null=True)),
                ('arrived_at', models.DateTimeField(blank=True, null=True)),
                ('started_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('cancellation_reason', models.CharField(blank=True, max_length=64)),
                ('driver', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='bookings', to='drivers.driver')),
                ('passenger', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='bookings', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'bookings',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status', 'timeout_at'], name='booking_status_timeout_idx'),
                    models.Index(fields=['driver', 'status'], name='booking_driver_status_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='RideOffer',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('offer_details', models.JSONField(default=dict)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('accepted', 'Accepted'), ('declined', 'Declined'), ('expired', 'Expired')], default='pending', max_length=20)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('expires_at', models.DateTimeField(db_index=True)),
                ('responded_at', models.DateTimeField(blank=True, null=True)),
                ('booking', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='offers', to='bookings.booking')),
                ('driver', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='offers', to='drivers.driver')),
            ],
            options={
                'db_table': 'ride_offers',
                'ordering': ['-created_at'],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('status', 'pending')), fields=('booking',), name='unique_pending_offer_per_booking'),
                ],
            },
        ),
    ]
