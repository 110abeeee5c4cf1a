"""
Celery configuration for the Brewpad recipe catalog.

Runs the catalog refresh pipeline outside the request cycle and refreshes
the catalog periodically via Celery Beat.
"""

import os
from celery import Celery
from celery.schedules import crontab

# Set the default Django settings module for the 'celery' program.
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("brewpad")

# - namespace='CELERY' means all celery-related configuration keys
#   should have a `CELERY_` prefix.
app.config_from_object("django.conf:settings", namespace="CELERY")

# Load task modules from all registered Django apps.
app.autodiscover_tasks()

app.conf.task_default_queue = "default"
app.conf.task_routes = {
    "catalog.tasks.refresh_catalog": {"queue": "sync"},
}

app.conf.beat_schedule = {
    "refresh-catalog-every-6-hours": {
        "task": "catalog.tasks.refresh_catalog",
        "schedule": crontab(minute=0, hour="*/6"),
    },
}
