from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('bookings', '0001_initial'),
    ]

    operations = [
        migrations.AddField(
            model_name='booking',
            name='last_match_failed_at',
            field=models.DateTimeField(blank=True, null=True),
        ),
    ]
