"""
Add Celery Beat schedules for upload housekeeping tasks.

This migration creates periodic task schedules for:
- Reaping upload sessions that stopped receiving chunks
- Sweeping staging files with no matching active session
"""

from django.db import migrations


def create_periodic_tasks(apps, schema_editor):
    """Create periodic tasks for upload housekeeping."""
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    # Every 1 hour
    schedule_1hour, _ = IntervalSchedule.objects.get_or_create(
        every=1,
        period="hours",
    )

    # Every 6 hours
    schedule_6hours, _ = IntervalSchedule.objects.get_or_create(
        every=6,
        period="hours",
    )

    # Abort stale upload sessions
    PeriodicTask.objects.get_or_create(
        name="Media: Reap Stale Upload Sessions",
        defaults={
            "task": "media.tasks.reap_stale_upload_sessions",
            "interval": schedule_1hour,
            "enabled": True,
            "description": (
                "Aborts active upload sessions with no activity for "
                "UPLOAD_SESSION_STALE_AFTER_HOURS and releases their staging files."
            ),
        },
    )

    # Cleanup orphaned staging files
    PeriodicTask.objects.get_or_create(
        name="Media: Cleanup Orphaned Staging Files",
        defaults={
            "task": "media.tasks.cleanup_orphaned_staging_files",
            "interval": schedule_6hours,
            "enabled": True,
            "description": (
                "Safety net cleanup for staging files without a matching active "
                "upload session. Handles process crashes mid-upload."
            ),
        },
    )


def remove_periodic_tasks(apps, schema_editor):
    """Remove upload periodic tasks on migration rollback."""
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    PeriodicTask.objects.filter(
        name__in=[
            "Media: Reap Stale Upload Sessions",
            "Media: Cleanup Orphaned Staging Files",
        ]
    ).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("media", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_tasks, remove_periodic_tasks),
    ]
