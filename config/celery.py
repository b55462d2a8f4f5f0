"""Celery application for the lab booking portal.

Notification and audit delivery run as tasks so that booking
transactions never wait on them. No periodic tasks are scheduled.
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.dev")

app = Celery("labbook")

app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()
