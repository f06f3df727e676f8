from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='OperatorDispatchSettings',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('operator_code', models.CharField(max_length=16, unique=True)),
                ('operator_name', models.CharField(blank=True, max_length=255)),
                ('dispatch_mode', models.CharField(choices=[('auto', 'Automatic'), ('manual', 'Manual')], default='auto', max_length=10)),
                ('auto_dispatch_enabled', models.BooleanField(default=False)),
                ('max_auto_accept_wait_time_minutes', models.PositiveIntegerField(default=30)),
                ('enable_surge_pricing', models.BooleanField(default=False)),
                ('operator_surge_percentage', models.DecimalField(decimal_places=2, default=0, max_digits=5)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'operator_dispatch_settings',
                'verbose_name_plural': 'operator dispatch settings',
            },
        ),
    ]
