"""
Celery application configuration for background maintenance
"""

from celery import Celery
from celery.schedules import crontab
from hearth.core.config import settings

# Create Celery app instance
celery_app = Celery(
    'hearth',
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=['hearth.tasks.maintenance_tasks'],
)

# Load configuration
celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,
    task_track_started=True,
    task_time_limit=30 * 60,  # 30 minutes hard limit
    task_soft_time_limit=25 * 60,  # 25 minutes soft limit
)

# Beat schedule for periodic tasks
celery_app.conf.beat_schedule = {
    'provision-households-daily': {
        'task': 'hearth.tasks.maintenance_tasks.provision_all_households',
        'schedule': crontab(hour=1, minute=0),  # 01:00 UTC daily
    },
    'backup-households-daily': {
        'task': 'hearth.tasks.maintenance_tasks.backup_all_households',
        'schedule': crontab(hour=2, minute=0),  # 02:00 UTC daily
    },
    'clean-old-backups-daily': {
        'task': 'hearth.tasks.maintenance_tasks.clean_old_backups',
        'schedule': crontab(hour=3, minute=0),  # 03:00 UTC daily
    },
}
