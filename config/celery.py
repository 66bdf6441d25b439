"""
Celery configuration for the Shepherd project.
"""
import os
from celery import Celery
from celery.schedules import crontab

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

app = Celery('config')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()

# Celery Beat Schedule
app.conf.beat_schedule = {
    'generate-schedule-occurrences': {
        'task': 'apps.scheduler.tasks.generate_all_occurrences_task',
        'schedule': crontab(hour='1', minute='0'),
    },
    'send-care-plan-reminders': {
        'task': 'apps.members.tasks.send_care_plan_reminders_task',
        'schedule': crontab(hour='7', minute='0'),
    },
}
