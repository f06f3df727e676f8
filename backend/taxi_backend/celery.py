"""Celery application for background dispatch work."""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "taxi_backend.settings.settings")

app = Celery("taxi_backend")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()
