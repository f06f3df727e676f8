from django.db import models


class SequentialCounter(models.Model):
    """Monotonic per-namespace counter backing human-readable IDs"""

    namespace = models.CharField(max_length=64, unique=True)
    current_value = models.PositiveBigIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'sequential_counters'

    def __str__(self):
        return f"{self.namespace} = {self.current_value}"
