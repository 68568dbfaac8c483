"""
Celery configuration for the Django application.

Celery runs the upload housekeeping jobs:
- Reaping upload sessions that stopped receiving chunks
- Sweeping staging files left behind by crashed processes

Redis is both the message broker and result backend. Periodic schedules live
in the database (django-celery-beat) and are seeded by a media migration.
Tasks are auto-discovered from all installed Django apps.

Usage:
    from media.tasks import reap_stale_upload_sessions

    reap_stale_upload_sessions.delay()

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

# Set the default Django settings module for the Celery worker
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

# Celery will look for a tasks.py module in each installed app
app.autodiscover_tasks()
